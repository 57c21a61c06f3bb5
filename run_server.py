import os

import uvicorn

from brandforge.main import app

# Run locally: GEMINI_API_KEY=... python run_server.py
if __name__ == "__main__":
    if not os.getenv("GEMINI_API_KEY") and not os.getenv("API_KEY"):
        print("⚠️  GEMINI_API_KEY is not set; generation calls will fail.")
    uvicorn.run(app, host="127.0.0.1", port=int(os.getenv("PORT", "8000")))
