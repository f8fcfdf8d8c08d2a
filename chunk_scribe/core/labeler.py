"""
Speaker labeling of a raw transcript via an OpenAI chat model.

This module builds the fixed labeling instruction, sends the whole transcript
in one chat-completion request, and falls back to reasoning-model parameters
when the configured model rejects sampling options.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from .debug_log import get_debug_logger
from .progress import reporter

logger = logging.getLogger(__name__)

REASONING_UNSUPPORTED_PARAMS = ("temperature", "max_tokens")


class LabelingError(Exception):
    """Raised when the chat model produces no usable labeled transcript."""

    pass


def is_reasoning_model_error(exception: Exception) -> bool:
    """
    Check if the exception indicates the model rejected sampling parameters.

    Detects error code 400 with parameters:
    - type: 'invalid_request_error'
    - code: 'unsupported_value' or 'unsupported_parameter'
    - param: 'temperature' or 'max_tokens'

    Args:
        exception: Exception from the chat-completion call

    Returns:
        True if the request should be retried without those parameters
    """
    if getattr(exception, "status_code", None) != 400:
        return False

    error_data = getattr(exception, "body", None)
    if not isinstance(error_data, dict):
        return False

    error_info = error_data.get("error", error_data)
    if not isinstance(error_info, dict):
        return False

    error_type = str(error_info.get("type") or "").lower()
    error_code = str(error_info.get("code") or "").lower()
    error_param = str(error_info.get("param") or "").lower()

    return (
        error_type == "invalid_request_error"
        and error_code in ("unsupported_value", "unsupported_parameter")
        and error_param in REASONING_UNSUPPORTED_PARAMS
    )


def adjust_params_for_reasoning_model(original_params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop sampling parameters reasoning models do not accept.

    Args:
        original_params: Original parameters dict

    Returns:
        Adjusted parameters dict suitable for reasoning model
    """
    adjusted_params = {k: v for k, v in original_params.items() if k not in REASONING_UNSUPPORTED_PARAMS}
    if "max_tokens" in original_params:
        adjusted_params["max_completion_tokens"] = original_params["max_tokens"]

    logger.info(f"Adjusted parameters for reasoning model: {sorted(adjusted_params)}")
    return adjusted_params


def make_chat_request_with_reasoning_fallback(client: Any, params: Dict[str, Any]) -> Any:
    """
    Make a chat-completion request, retrying once with reasoning-model parameters.

    Args:
        client: OpenAI client instance
        params: Request parameters

    Returns:
        Response from the successful call
    """
    try:
        return client.chat.completions.create(**params)
    except Exception as e:
        if not is_reasoning_model_error(e):
            raise
        logger.info("Model rejected sampling parameters, retrying as a reasoning model")
        return client.chat.completions.create(**adjust_params_for_reasoning_model(params))


def build_system_prompt(speakers: Sequence[str]) -> str:
    """Instruction telling the model who speaks and how to prefix utterances."""
    if len(speakers) == 1:
        count_line = "There is exactly one speaker in this recording:"
    else:
        count_line = f"There are exactly {len(speakers)} speakers in this recording:"
    lines = ["You are a transcription assistant.", count_line]
    lines.extend(f"- {name}" for name in speakers)
    lines.append("Prefix each utterance with the correct speaker name.")
    return "\n".join(lines)


class SpeakerLabeler:
    """
    Labels speakers in a transcript with a single chat-completion call.

    There is no unlabeled fallback here: an empty answer is an error.
    """

    def __init__(
        self,
        client: Any,
        model: str = "gpt-4o",
        speakers: Optional[Sequence[str]] = None,
        temperature: Optional[float] = 0.2,
        is_reasoning_model: bool = False,
        project_root: str = ".",
    ):
        """
        Args:
            client: OpenAI client (or any object exposing chat.completions.create)
            model: Chat model name
            speakers: Known speaker names, at least one
            temperature: Sampling temperature for standard models
            is_reasoning_model: Skip temperature up front for reasoning models
            project_root: Directory used for debug logs
        """
        self.client = client
        self.model = model
        self.speakers: List[str] = list(speakers) if speakers else ["Speaker"]
        self.temperature = temperature
        self.is_reasoning_model = is_reasoning_model
        self.debug_logger = get_debug_logger(project_root)

    @property
    def system_prompt(self) -> str:
        return build_system_prompt(self.speakers)

    def _request_params(self, transcript: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": transcript},
            ],
        }
        if not self.is_reasoning_model and self.temperature is not None:
            params["temperature"] = self.temperature
        return params

    def label(self, transcript: str) -> str:
        """
        Return the transcript with each utterance prefixed by its speaker.

        Args:
            transcript: Full raw transcript

        Returns:
            Labeled transcript text

        Raises:
            LabelingError: If the transcript is empty, the call fails, or no content comes back
        """
        if not transcript.strip():
            raise LabelingError("Nothing to label: the raw transcript is empty")

        reporter.sub_step(f"Labeling speakers via {self.model}")
        params = self._request_params(transcript)
        self.debug_logger.log_label_request(self.system_prompt, transcript, params)

        try:
            response = make_chat_request_with_reasoning_fallback(self.client, params)
        except Exception as e:
            raise LabelingError(f"Speaker labeling request failed: {e}") from e

        choices = getattr(response, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        content = getattr(message, "content", None)
        if not content or not content.strip():
            raise LabelingError(f"{self.model} did not return a labeled transcript")

        self.debug_logger.log_label_response(content, transcript)
        return content.strip()
