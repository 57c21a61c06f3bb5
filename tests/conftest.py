"""
Pytest fixtures for BrandForge tests.
"""

import asyncio
import base64
import json

import httpx
import pytest

from brandforge.errors import ErrorKind, GenerationError
from brandforge.llm_service import GeminiClient
from brandforge.schemas import BrandIdentity, GeneratedImage, LocationValidation

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


def identity_payload(business_type="Product", products=3, minimum=5000, feasible=True):
    return {
        "companyName": "Crumb & Co",
        "slogan": "Baked for the bold",
        "description": "A vegan bakery focusing on gluten-free wedding cakes.",
        "colorPalette": ["#1E3A8A", "#F59E0B", "#FFFFFF"],
        "logoStyle": "Minimal wheat sheaf in a circle",
        "businessType": business_type,
        "normalizedLocation": "Belgrade, Serbia",
        "locationValid": True,
        "products": [
            {
                "name": f"Offering {i}",
                "description": f"Offering number {i}",
                "price": 10 + i,
                "visualPrompt": f"Offering {i} with the logo on the box",
            }
            for i in range(products)
        ],
        "budgetPlan": {
            "items": [
                {
                    "category": "Operations",
                    "item": "Oven",
                    "cost": 2000,
                    "frequency": "One-time",
                    "reasoning": "Commercial oven",
                    "searchQuery": "commercial oven Belgrade",
                },
                {
                    "category": "Rent",
                    "item": "Shop",
                    "cost": 800,
                    "frequency": "Monthly",
                    "reasoning": "Small retail unit",
                    "searchQuery": "retail space for rent Belgrade",
                },
                {
                    "category": "Operations",
                    "item": "Utensils",
                    "cost": 300,
                    "frequency": "One-time",
                    "reasoning": "Trays and mixers",
                },
            ],
            "totalEstimatedMonthly": 800,
            "totalOneTimeStartup": 2300,
            "estimatedMonthlyRevenue": 3000,
            "breakEvenMonths": 4,
            "currency": "USD",
            "advice": "Start with pre-orders.",
            "isFeasible": feasible,
            "suggestedMinimumBudget": minimum,
            "missingBudget": 0,
        },
    }


def text_response(obj):
    text = obj if isinstance(obj, str) else json.dumps(obj)
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def image_response(data=PNG_BYTES, mime_type="image/png"):
    return {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"inlineData": {"mimeType": mime_type, "data": base64.b64encode(data).decode()}}
                    ]
                }
            }
        ]
    }


def error_response(status_code, status, message):
    return httpx.Response(
        status_code,
        json={"error": {"code": status_code, "status": status, "message": message}},
    )


class RecordingTransport(httpx.AsyncBaseTransport):
    """Replays scripted responses and records every request."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    async def handle_async_request(self, request):
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    def bodies(self):
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    """Retries happen without sleeping."""
    monkeypatch.setattr("brandforge.retry.DEFAULT_BASE_DELAY", 0.0)
    monkeypatch.setattr("brandforge.retry.DEFAULT_JITTER", 0.0)


def make_client(responses):
    transport = RecordingTransport(responses)
    client = GeminiClient(transport=transport)
    client.set_config(api_key="test-key")
    return client, transport


class FakeGeminiClient:
    """
    Stand-in for GeminiClient at the session boundary.

    ``image_results`` maps a prompt substring to a list of outcomes (image or
    exception) consumed in order; ``gates`` holds asyncio.Events an image call
    waits on before answering.
    """

    def __init__(self, identity=None, identity_error=None, location=None):
        self.identity = identity
        self.identity_error = identity_error
        self.location = location
        self.image_results = {}
        self.gates = {}
        self.image_calls = []
        self.remote_image_calls = 0
        self.identity_calls = 0

    async def validate_location(self, location):
        if isinstance(self.location, Exception):
            raise self.location
        return self.location or LocationValidation(is_valid=False, normalized_name=location)

    async def generate_brand_identity(self, request):
        self.identity_calls += 1
        await asyncio.sleep(0)
        if self.identity_error is not None:
            raise self.identity_error
        return self.identity

    async def generate_image(self, prompt, aspect_ratio="1:1", reference_image=None, *, quota):
        self.image_calls.append((prompt, reference_image))
        quota.check()
        self.remote_image_calls += 1

        key = next((k for k in [*self.gates, *self.image_results] if k in prompt), None)
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)

        outcomes = self.image_results.get(key) or []
        outcome = outcomes.pop(0) if outcomes else GeneratedImage(data=PNG_BYTES)
        if isinstance(outcome, GenerationError):
            quota.record(outcome)
            raise outcome
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def identity():
    return BrandIdentity(**identity_payload())


@pytest.fixture
def quota_error():
    return GenerationError(
        "RESOURCE_EXHAUSTED Quota exceeded for metric generate_content_free_tier_requests, limit: 0. Please retry in 21.5s.",
        kind=ErrorKind.QUOTA,
        retry_after=21.5,
        status_code=429,
    )
