from typing import Optional
from datetime import datetime
from pydantic import BaseModel

PENDING_PREFIX = "pending/"


class Upload(BaseModel):
    id: str
    user_email: str
    filename: str
    subject: str
    storage_path: Optional[str] = None
    original_text: Optional[str] = None
    is_published: bool = False
    created_at: Optional[datetime] = None

    def is_owned_by(self, user_email: Optional[str]) -> bool:
        if not user_email:
            return False
        return (self.user_email or "").strip().lower() == user_email.strip().lower()

    def has_archived_pdf(self) -> bool:
        """True once the archive step has replaced the pending placeholder path"""
        path = self.storage_path or ""
        return path.endswith(".pdf") and not path.startswith(PENDING_PREFIX)
