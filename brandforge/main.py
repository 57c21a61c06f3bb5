import logging
from typing import Dict, Any
from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware

from brandforge.schemas import FormUpdate, LocationCheck, SessionSnapshot, SlotView, Tab
from brandforge.session import IDENTITY_FAILED_NOTICE, Session

# Configure Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("BrandForge")

app = FastAPI(title="BrandForge", version="1.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# In-Memory Storage, gone on restart
sessions: Dict[str, Session] = {}


def get_session(session_id: str) -> Session:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@app.post("/api/session", response_model=Dict[str, Any])
async def create_session():
    session = Session()
    sessions[session.session_id] = session
    logger.info(f"Session {session.session_id} created")
    return {"session_id": session.session_id}


@app.get("/api/session/{session_id}", response_model=SessionSnapshot)
def get_dashboard(session_id: str):
    return get_session(session_id).snapshot()


@app.patch("/api/session/{session_id}/form", response_model=SessionSnapshot)
def update_form(session_id: str, update: FormUpdate):
    session = get_session(session_id)
    session.update_form(**update.model_dump(exclude_none=True))
    return session.snapshot()


@app.post("/api/session/{session_id}/location/validate", response_model=LocationCheck)
async def validate_location(session_id: str):
    """
    Check the form's location; a real place replaces the input with its
    formal name.
    """
    session = get_session(session_id)
    status = await session.check_location()
    return LocationCheck(location_status=status, location=session.form.location)


@app.post("/api/session/{session_id}/generate", response_model=SessionSnapshot)
async def generate(session_id: str):
    """
    Run one generation cycle. Returns once the brand identity is ready;
    logo and offering images keep generating in the background.
    """
    session = get_session(session_id)
    if session.status == "generating":
        raise HTTPException(status_code=409, detail="Generation already in progress")

    identity = await session.submit()
    if identity is None:
        code = 502 if session.notice == IDENTITY_FAILED_NOTICE else 400
        raise HTTPException(status_code=code, detail=session.notice)

    return session.snapshot()


@app.put("/api/session/{session_id}/tab/{tab}", response_model=SessionSnapshot)
def select_tab(session_id: str, tab: Tab):
    session = get_session(session_id)
    session.select_tab(tab)
    return session.snapshot()


@app.post("/api/session/{session_id}/images/{slot_id}/retry", response_model=SlotView)
async def retry_image(session_id: str, slot_id: str):
    """
    Restart one image slot. Returns the pending slot at once; poll the
    dashboard for the result.
    """
    session = get_session(session_id)
    try:
        slot = session.retry_slot(slot_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown image slot: {slot_id}")
    return slot.view()


@app.get("/api/session/{session_id}/images/{slot_id}")
def get_image(session_id: str, slot_id: str):
    image = get_session(session_id).image(slot_id)
    if image is None:
        raise HTTPException(status_code=404, detail="Image not ready")
    return Response(content=image.data, media_type=image.mime_type)
