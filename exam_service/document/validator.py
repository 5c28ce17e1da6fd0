import io
import PyPDF2
from typing import Optional

PDF_CONTENT_TYPE = "application/pdf"


def is_pdf_content_type(content_type: Optional[str]) -> bool:
    return (content_type or "").split(";")[0].strip().lower() == PDF_CONTENT_TYPE


def count_pdf_pages(data: bytes) -> Optional[int]:
    """
    Return the page count of PDF bytes
    Returns: page_count or None if the bytes cannot be read as a PDF
    """
    try:
        pdf_reader = PyPDF2.PdfReader(io.BytesIO(data))
        page_count = len(pdf_reader.pages)
        print(f"Valid PDF: {page_count} pages")
        return page_count
    except Exception as e:
        print(f"PDF page count failed: {e}")
        return None
