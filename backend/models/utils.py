"""Column defaults shared by the ORM models."""

import uuid
from datetime import datetime, timezone


def generate_uuid() -> str:
    """Primary keys are UUID4 strings so ids can be minted before insert."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Timezone-aware timestamp for ``created_at``/``updated_at`` defaults."""
    return datetime.now(timezone.utc)
