"""Tests for the transcript assembler (commit rule and live text)."""

import pytest

from src.core.models import TranscriptEvent
from src.services.transcription.assembler import TranscriptAssembler, apply


def _event(text: str, language: str = "en", is_final: bool = True) -> TranscriptEvent:
    return TranscriptEvent(utterance_text=text, language_code=language, is_final=is_final)


class TestApply:
    """Verify the pure commit rule."""

    def test_first_final_event_becomes_transcript(self):
        assert apply(_event("Hello"), "") == "Hello"

    def test_joins_with_semicolon_after_plain_text(self):
        assert apply(_event("world"), "Hello") == "Hello; world"

    @pytest.mark.parametrize("ending", [".", ",", ":", ";", "—"])
    def test_joins_with_space_after_punctuation(self, ending):
        assert apply(_event("world"), f"Hello{ending}") == f"Hello{ending} world"

    def test_trailing_whitespace_is_ignored_for_punctuation_check(self):
        assert apply(_event("world"), "Hello.  ") == "Hello.   world"

    def test_interim_event_is_not_committed(self):
        assert apply(_event("wor", is_final=False), "Hello") == "Hello"

    def test_other_language_is_not_committed(self):
        assert apply(_event("Bonjour", language="fr"), "Hello") == "Hello"

    def test_committed_text_is_only_extended(self):
        transcript = ""
        for text in ["Good morning.", "How are you", "fine"]:
            updated = apply(_event(text), transcript)
            assert updated.startswith(transcript)
            transcript = updated
        assert transcript == "Good morning. How are you; fine"


class TestTranscriptAssembler:
    """Verify live text and accumulation across a stream of events."""

    def test_interim_updates_live_only(self):
        assembler = TranscriptAssembler()
        assert assembler.feed(_event("Hel", is_final=False)) is True
        assert assembler.live == "Hel"
        assert assembler.accumulated == ""

    def test_final_updates_both(self):
        assembler = TranscriptAssembler()
        assembler.feed(_event("Hello"))
        assembler.feed(_event("world"))
        assert assembler.live == "world"
        assert assembler.accumulated == "Hello; world"

    def test_non_english_event_is_ignored(self, caplog):
        assembler = TranscriptAssembler()
        assembler.feed(_event("Hello"))

        with caplog.at_level("INFO"):
            assert assembler.feed(_event("Hola", language="es")) is False

        assert assembler.live == "Hello"
        assert assembler.accumulated == "Hello"
        assert "Ignored non-en transcription" in caplog.text

    def test_reset_live_keeps_transcript(self):
        assembler = TranscriptAssembler()
        assembler.feed(_event("Hello"))
        assembler.reset_live()
        assert assembler.live == ""
        assert assembler.accumulated == "Hello"
