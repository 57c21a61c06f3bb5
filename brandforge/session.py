import asyncio
import logging
import uuid
from typing import Dict, Optional, Set

from brandforge.errors import GenerationError
from brandforge.feasibility import summarize_budget
from brandforge.llm_service import GeminiClient, llm_client
from brandforge.prompts import logo_prompt, offering_prompt
from brandforge.quota import QUOTA_EXCEEDED_MESSAGE, QuotaGuard
from brandforge.schemas import (
    BrandIdentity,
    BusinessRequest,
    FormState,
    GeneratedImage,
    SessionSnapshot,
    SlotView,
)

logger = logging.getLogger(__name__)

LOGO_SLOT = "logo"

IDENTITY_FAILED_NOTICE = "Something went wrong. Please try again."
MISSING_FIELDS_NOTICE = "Describe your business and enter a location to continue."
INVALID_LOCATION_NOTICE = "Enter a real location before generating."
IMAGE_FAILED_MESSAGE = "Generation failed. Please retry."


def product_slot(index: int) -> str:
    return f"product[{index}]"


def describe_image_error(error: Exception) -> str:
    """User-facing text for a failed image slot."""
    if isinstance(error, GenerationError) and error.is_quota:
        if error.retry_after:
            return f"{QUOTA_EXCEEDED_MESSAGE} Retry in about {round(error.retry_after)} seconds."
        return QUOTA_EXCEEDED_MESSAGE
    return IMAGE_FAILED_MESSAGE


class ImageSlot:
    def __init__(self, slot_id: str, cycle_id: int):
        self.slot_id = slot_id
        self.cycle_id = cycle_id
        self.status = "pending"
        self.image: Optional[GeneratedImage] = None
        self.error: Optional[str] = None
        self.error_kind: Optional[str] = None

    def view(self) -> SlotView:
        return SlotView(
            slot_id=self.slot_id,
            status=self.status,
            error=self.error,
            has_image=self.image is not None,
            mime_type=self.image.mime_type if self.image else None,
        )


class Session:
    """
    One user's generation state: the form, the current cycle's identity,
    the image slots and the quota latch.

    Image slots run as independent asyncio tasks. Each slot remembers the
    cycle it was issued under; completions from an older cycle are dropped.
    """

    def __init__(self, client: Optional[GeminiClient] = None, session_id: Optional[str] = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.client = client or llm_client
        self.form = FormState()
        self.location_status = "idle"
        self.status = "idle"
        self.notice: Optional[str] = None
        self.request: Optional[BusinessRequest] = None
        self.identity: Optional[BrandIdentity] = None
        self.cycle_id = 0
        self.slots: Dict[str, ImageSlot] = {}
        self.quota = QuotaGuard()
        self.active_tab = "identity"
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Form
    # ------------------------------------------------------------------
    def update_form(self, **changes) -> FormState:
        for key, value in changes.items():
            if key == "location" and value != self.form.location:
                self.location_status = "idle"
            setattr(self.form, key, value)
        return self.form

    async def check_location(self) -> str:
        location = self.form.location.strip()
        if len(location) < 2:
            return self.location_status

        try:
            result = await self.client.validate_location(location)
        except GenerationError as e:
            logger.error(f"Location check failed: {e.message}")
            self.location_status = "idle"
            return self.location_status

        if result.is_valid:
            self.form.location = result.normalized_name
            self.location_status = "valid"
        else:
            self.location_status = "invalid"
        return self.location_status

    def select_tab(self, tab: str) -> None:
        self.active_tab = tab

    # ------------------------------------------------------------------
    # Generation cycle
    # ------------------------------------------------------------------
    async def submit(self) -> Optional[BrandIdentity]:
        if self.status == "generating":
            return None
        if not self.form.is_complete():
            self.notice = MISSING_FIELDS_NOTICE
            return None
        if self.location_status == "invalid":
            self.notice = INVALID_LOCATION_NOTICE
            return None

        request = self.form.to_request()

        self.cycle_id += 1
        self.request = request
        self.identity = None
        self.slots = {}
        self.notice = None
        self.status = "generating"

        try:
            identity = await self.client.generate_brand_identity(request)
        except GenerationError as e:
            logger.error(f"Failed to generate brand identity: {e.message}")
            self.request = None
            self.status = "idle"
            self.notice = IDENTITY_FAILED_NOTICE
            return None
        except Exception:
            self.request = None
            self.status = "idle"
            raise

        self.identity = identity
        if identity.normalized_location and identity.normalized_location != self.form.location:
            self.form.location = identity.normalized_location
        self.status = "ready"

        self._launch_images(identity)
        return identity

    def _launch_images(self, identity: BrandIdentity) -> None:
        self._spawn(LOGO_SLOT)
        for index in range(len(identity.products)):
            self._spawn(product_slot(index))

    def _slot_ids(self):
        if self.identity is None:
            return []
        return [LOGO_SLOT] + [product_slot(i) for i in range(len(self.identity.products))]

    def _slot_request(self, slot_id: str):
        identity = self.identity
        if slot_id == LOGO_SLOT:
            return logo_prompt(identity), None

        index = int(slot_id[len("product["):-1])
        product = identity.products[index]
        logo = self.slots.get(LOGO_SLOT)
        reference = logo.image if logo is not None and logo.status == "ready" else None
        prompt = offering_prompt(product, identity.business_type, with_logo=reference is not None)
        return prompt, reference

    def _spawn(self, slot_id: str) -> ImageSlot:
        prompt, reference = self._slot_request(slot_id)
        slot = ImageSlot(slot_id, self.cycle_id)
        self.slots[slot_id] = slot

        task = asyncio.create_task(self._run_slot(slot, prompt, reference))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return slot

    def _is_current(self, slot: ImageSlot) -> bool:
        return slot.cycle_id == self.cycle_id and self.slots.get(slot.slot_id) is slot

    async def _run_slot(
        self,
        slot: ImageSlot,
        prompt: str,
        reference: Optional[GeneratedImage],
    ) -> None:
        try:
            image = await self.client.generate_image(
                prompt,
                "1:1",
                reference,
                quota=self.quota,
            )
        except Exception as e:
            if not self._is_current(slot):
                logger.debug(f"Dropping stale failure for {slot.slot_id} (cycle {slot.cycle_id})")
                return
            if isinstance(e, GenerationError):
                logger.error(f"Image generation failed for {slot.slot_id}: {e.message}")
                slot.error_kind = e.kind.value
            else:
                logger.exception(f"Unexpected error generating {slot.slot_id}")
            slot.status = "failed"
            slot.error = describe_image_error(e)
            return

        if not self._is_current(slot):
            logger.debug(f"Dropping stale image for {slot.slot_id} (cycle {slot.cycle_id})")
            return

        slot.image = image
        slot.status = "ready"
        logger.info(f"Image ready for {slot.slot_id}")

    def retry_slot(self, slot_id: str) -> ImageSlot:
        """
        Manually regenerate one slot in the background and return its new
        pending state; a slot still in flight is left alone.
        """
        if slot_id not in self._slot_ids():
            raise KeyError(slot_id)

        current = self.slots.get(slot_id)
        if current is not None and current.status == "pending":
            return current

        return self._spawn(slot_id)

    async def wait_for_images(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def image(self, slot_id: str) -> Optional[GeneratedImage]:
        slot = self.slots.get(slot_id)
        return slot.image if slot is not None else None

    def snapshot(self) -> SessionSnapshot:
        summary = None
        if self.identity is not None and self.request is not None:
            summary = summarize_budget(self.identity.budget_plan, self.request.budget)

        return SessionSnapshot(
            session_id=self.session_id,
            status=self.status,
            notice=self.notice,
            form=self.form,
            location_status=self.location_status,
            identity=self.identity,
            budget_summary=summary,
            slots=[slot.view() for slot in self.slots.values()],
            image_quota_blocked=self.quota.blocked,
            active_tab=self.active_tab,
        )
