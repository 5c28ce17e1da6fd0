from typing import List, Optional
from pydantic import BaseModel

OPTION_KEYS = ("A", "B", "C", "D", "E")


class Question(BaseModel):
    id: Optional[str] = None
    upload_id: Optional[str] = None
    question_number: int
    question_text: str
    passage_text: Optional[str] = None
    precondition_text: Optional[str] = None
    option_a: Optional[str] = None
    option_b: Optional[str] = None
    option_c: Optional[str] = None
    option_d: Optional[str] = None
    option_e: Optional[str] = None
    correct_answer: Optional[str] = None
    page_number: Optional[int] = None

    def options(self) -> List[Optional[str]]:
        """Option texts in A-E order, unused slots as None"""
        return [self.option_a, self.option_b, self.option_c, self.option_d, self.option_e]

    def known_answer(self) -> Optional[str]:
        value = (self.correct_answer or "").strip().upper()
        return value or None
