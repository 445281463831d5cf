from openai import OpenAI
from typing import List, Dict, Any, Optional, Union
from lib.config import Settings
from lib.error_handler import AppError

SUMMARY_PROMPT = (
    "You summarize phone calls between a computer store's voice assistant and a customer. "
    "Write two or three sentences covering what the customer wanted, "
    "which products or appointments were discussed, and how the call ended."
)

class OpenAIClient:
    def __init__(self, settings: Settings, client: Optional[OpenAI] = None):
        self.model = settings.openai_summary_model
        self.client = client or OpenAI(api_key=settings.openai_api_key)

    @staticmethod
    def _format_transcript(transcript: Union[str, List[Dict[str, Any]]]) -> str:
        if isinstance(transcript, str):
            return transcript
        lines = []
        for turn in transcript:
            role = turn.get('role', 'unknown')
            text = turn.get('message') or turn.get('content') or turn.get('transcript') or ''
            if text:
                lines.append(f"{role}: {text}")
        return "\n".join(lines)

    async def summarize_call(self, transcript: Union[str, List[Dict[str, Any]]]) -> str:
        """
        Generate a short summary of a finished call
        """
        text = self._format_transcript(transcript)
        if not text.strip():
            raise AppError("Cannot summarize an empty transcript", status_code=400)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SUMMARY_PROMPT},
                    {"role": "user", "content": text}
                ],
                max_tokens=150
            )
            return response.choices[0].message.content.strip()

        except Exception as e:
            raise AppError(f"Call summary failed: {str(e)}", status_code=500)
