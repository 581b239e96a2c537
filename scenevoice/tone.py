"""ToneClassifier: batch-labels dialogue records through a remote chat bot.

The bot receives one figure's records as a JSON string and answers, over an
event stream, with the same records carrying an ``emotion`` label.  Labels
are merged back into the caller's records by ``step``.
"""

import json
import logging
from typing import Optional

import httpx

from .config import ClassifierConfig
from .records import FigureState, records_to_dicts

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SEC = 120.0
MAX_RESPONSE_BYTES = 10 << 20

EVENT_COMPLETED = "conversation.message.completed"
TYPE_ANSWER = "answer"


def extract_final_content(lines: list[str]) -> str:
    """Return the answer content of the first completed-message event.

    Looks for ``event:conversation.message.completed`` immediately followed
    by a ``data:`` line whose JSON payload has ``type == "answer"``.

    Raises:
        ValueError: If no such event is present.
    """
    for i, line in enumerate(lines):
        if not line.startswith("event:"):
            continue
        if line[len("event:"):].strip() != EVENT_COMPLETED:
            continue
        if i + 1 >= len(lines) or not lines[i + 1].startswith("data:"):
            continue
        try:
            data = json.loads(lines[i + 1][len("data:"):].strip())
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict) and data.get("type") == TYPE_ANSWER:
            return str(data.get("content", ""))
    raise ValueError("No completed answer event found in classifier response")


def merge_labels(records: list[FigureState], labelled: list[dict]) -> list[FigureState]:
    """Copy non-empty ``emotion`` labels onto records with the same ``step``.

    Duplicate steps in *labelled*: the last one wins.  Records whose step is
    absent keep their current label.  *records* is updated in place and
    returned.
    """
    step_to_emotion: dict[int, str] = {}
    for item in labelled:
        emotion = item.get("emotion")
        if emotion and "step" in item:
            step_to_emotion[int(item["step"])] = str(emotion)

    for record in records:
        if record.step in step_to_emotion:
            record.emotion = step_to_emotion[record.step]
    return records


class ToneClassifier:
    """HTTP client for the tone/emotion labelling bot."""

    def __init__(
        self,
        config: ClassifierConfig,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.config = config
        self.client = client or httpx.Client(timeout=REQUEST_TIMEOUT_SEC)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ToneClassifier":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request_body(self, dialogue_json: str) -> dict:
        return {
            "bot_id": self.config.bot_id,
            "user_id": self.config.user_id,
            "stream": self.config.stream,
            "auto_save_history": self.config.auto_save_history,
            "additional_messages": [
                {
                    "role": "user",
                    "type": "tool_output",
                    "content_type": "text",
                    "content": dialogue_json,
                }
            ],
        }

    def send(self, dialogue_json: str) -> str:
        """POST one batch and return the (size-capped) response text.

        Raises:
            ValueError: If dialogue_json is empty.
            RuntimeError: If the service answers with a non-200 status.
            httpx.HTTPError: On transport failures or timeouts.
        """
        if not dialogue_json:
            raise ValueError("Dialogue batch must not be empty")

        headers = {
            "Authorization": f"Bearer {self.config.token}",
            "Content-Type": "application/json",
        }
        body = bytearray()
        with self.client.stream(
            "POST",
            self.config.api_url,
            headers=headers,
            json=self._request_body(dialogue_json),
            timeout=REQUEST_TIMEOUT_SEC,
        ) as response:
            for chunk in response.iter_bytes():
                body.extend(chunk)
                if len(body) >= MAX_RESPONSE_BYTES:
                    del body[MAX_RESPONSE_BYTES:]
                    logger.warning("classifier response truncated at %d bytes", MAX_RESPONSE_BYTES)
                    break
            text = body.decode("utf-8", errors="replace")
            if response.status_code != 200:
                raise RuntimeError(
                    f"Classifier returned status {response.status_code}: {text[:500]}"
                )
        return text

    def classify(self, records: list[FigureState]) -> list[FigureState]:
        """Label *records* in place and return them.

        Raises:
            ValueError: If records is empty, or the answer is missing or not a JSON list.
            RuntimeError / httpx.HTTPError: See :meth:`send`.
        """
        if not records:
            raise ValueError("Record batch must not be empty")

        dialogue_json = json.dumps(records_to_dicts(records), ensure_ascii=False)
        response_text = self.send(dialogue_json)
        content = extract_final_content(response_text.split("\n"))

        try:
            labelled = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Classifier answer is not valid JSON: {exc}") from exc
        if not isinstance(labelled, list):
            raise ValueError("Classifier answer is not a JSON array")

        logger.debug("classifier labelled %d of %d record(s)", len(labelled), len(records))
        return merge_labels(records, [item for item in labelled if isinstance(item, dict)])
