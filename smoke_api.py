import httpx
import asyncio

BASE_URL = "http://localhost:8000"


async def test_workflow():
    print("--- Starting API Integration Test ---")

    async with httpx.AsyncClient(timeout=300.0) as client:
        # 1. Create Session + Fill Form
        print("\n1. Testing /api/session...")
        try:
            resp = await client.post(f"{BASE_URL}/api/session")
            session_id = resp.json()["session_id"]
            print(f"Session ID: {session_id}")

            form = {
                "description": "A vegan bakery focusing on gluten-free wedding cakes.",
                "location": "belgrade",
                "budget": 8000,
                "currency": "EUR",
            }
            resp = await client.patch(f"{BASE_URL}/api/session/{session_id}/form", json=form)
            print(f"Status: {resp.status_code}")
        except Exception as e:
            print(f"Failed Session: {e}")
            return

        # 2. Validate Location
        print("\n2. Testing /location/validate...")
        try:
            resp = await client.post(f"{BASE_URL}/api/session/{session_id}/location/validate")
            print(f"Status: {resp.status_code}")
            print(f"Location: {resp.json()}")
        except Exception as e:
            print(f"Failed Location: {e}")
            return

        # 3. Generate Brand
        print("\n3. Testing /generate...")
        try:
            resp = await client.post(f"{BASE_URL}/api/session/{session_id}/generate")
            print(f"Status: {resp.status_code}")
            data = resp.json()
            if resp.status_code != 200:
                print(f"❌ Generation failed: {data.get('detail')}")
                return
            identity = data["identity"]
            plan = identity["budgetPlan"]
            print(f"Company: {identity['companyName']} - \"{identity['slogan']}\"")
            print(f"Feasible: {plan['isFeasible']} (minimum {plan['suggestedMinimumBudget']} {plan['currency']})")
        except Exception as e:
            print(f"Failed Generate: {e}")
            return

        # 4. Poll Image Slots
        print("\n4. Polling image slots...")
        for _ in range(30):
            resp = await client.get(f"{BASE_URL}/api/session/{session_id}")
            slots = resp.json()["slots"]
            if all(slot["status"] != "pending" for slot in slots):
                break
            await asyncio.sleep(2)

        for slot in slots:
            mark = "✅" if slot["status"] == "ready" else "❌"
            print(f"{mark} {slot['slotId']}: {slot['status']} {slot.get('error') or ''}")


if __name__ == "__main__":
    try:
        asyncio.run(test_workflow())
    except Exception as e:
        print(f"Server not reachable? {e}")
