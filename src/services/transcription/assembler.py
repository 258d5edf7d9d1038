"""Folds transcript events into the running consultation transcript.

Independently transcribed utterances are joined with a light pseudo
punctuation: a plain space after text that already ends in punctuation,
``"; "`` otherwise. Committed text is only ever extended.
"""

import logging

from src.core.models import TranscriptEvent

logger = logging.getLogger(__name__)

COMMIT_LANGUAGE = "en"
TERMINAL_PUNCTUATION = frozenset(".,:;—")


def apply(
    event: TranscriptEvent,
    accumulated: str,
    language: str = COMMIT_LANGUAGE,
) -> str:
    """Return the accumulated transcript after ``event``.

    Only final events in ``language`` are committed; anything else leaves
    ``accumulated`` unchanged.
    """
    if event.language_code != language or not event.is_final:
        return accumulated
    if not accumulated:
        return event.utterance_text

    trimmed = accumulated.strip()
    if trimmed and trimmed[-1] in TERMINAL_PUNCTUATION:
        return f"{accumulated} {event.utterance_text}"
    return f"{accumulated}; {event.utterance_text}"


class TranscriptAssembler:
    """Holds the committed transcript and the latest live utterance."""

    def __init__(self, language: str = COMMIT_LANGUAGE) -> None:
        self.language = language
        self.accumulated = ""
        self.live = ""

    def feed(self, event: TranscriptEvent) -> bool:
        """Apply one event.

        Returns:
            True if the event was in the commit language (live text updated).
        """
        if event.language_code != self.language:
            logger.info("Ignored non-%s transcription: %s", self.language, event.language_code)
            return False
        self.live = event.utterance_text
        self.accumulated = apply(event, self.accumulated, self.language)
        return True

    def reset_live(self) -> None:
        self.live = ""
