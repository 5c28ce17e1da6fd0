import time
import random
from typing import Optional
from google import genai
from google.genai import types

from exam_service.errors import UpstreamModelError

PDF_MIME_TYPE = "application/pdf"


def create_gemini_client(api_key: str) -> genai.Client:
    """Create a Gemini client for the given key"""
    if not api_key:
        raise ValueError("Gemini API key not set")
    client = genai.Client(api_key=api_key)
    print("Gemini client initialized")
    return client


def generate_content_with_retry(
    client,
    model: str,
    contents: list,
    config: Optional[types.GenerateContentConfig] = None,
    retries: int = 3,
    initial_delay: float = 2.0
):
    """
    Call Gemini generate_content with exponential backoff for 503/429 errors.
    Any other error is re-raised immediately.
    """
    delay = initial_delay

    for attempt in range(retries):
        try:
            return client.models.generate_content(
                model=model,
                contents=contents,
                config=config
            )
        except Exception as e:
            error_str = str(e)
            if "503" in error_str or "UNAVAILABLE" in error_str or "429" in error_str:
                if attempt == retries - 1:
                    raise

                wait_time = delay + random.uniform(0, 1)
                print(f"Gemini API busy (503/429). Retrying in {wait_time:.2f}s... (Attempt {attempt + 1}/{retries})")
                time.sleep(wait_time)
                delay *= 2
            else:
                raise


class GeminiModel:
    """One configured Gemini model (extraction or answer resolution)."""

    def __init__(self, client, model_name: str, retries: int = 3):
        self.client = client
        self.model_name = model_name
        self.retries = max(1, retries)

    @classmethod
    def from_api_key(cls, api_key: str, model_name: str, retries: int = 3) -> "GeminiModel":
        return cls(create_gemini_client(api_key), model_name, retries=retries)

    def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        pdf_bytes: Optional[bytes] = None,
    ) -> Optional[str]:
        """
        Run a single generation and return the response text (None when empty).

        Raises UpstreamModelError when the call itself fails.
        """
        contents = [prompt]
        if pdf_bytes is not None:
            contents.append(types.Part.from_bytes(data=pdf_bytes, mime_type=PDF_MIME_TYPE))

        config = None
        if system_instruction:
            config = types.GenerateContentConfig(system_instruction=system_instruction)

        try:
            response = generate_content_with_retry(
                self.client,
                model=self.model_name,
                contents=contents,
                config=config,
                retries=self.retries,
            )
        except Exception as e:
            print(f"Gemini call to {self.model_name} failed: {e}")
            raise UpstreamModelError() from e

        text = response.text if response is not None else None
        return text if text and text.strip() else None
