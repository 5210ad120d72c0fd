"""
Integration tests for record and replay.

Tests cover:
- Recording calls against a real object, then replaying the text
- Sequence fidelity and argument deferral end to end
- Substitutes supplied by the registry that replay through a sequence
- The Reset/Add scenario
- Reference and exception handling across record and replay
"""

import re
from abc import ABC, abstractmethod
from typing import Any

import pytest

from callbook.errors import (
    CallsExhaustedError,
    NoRegistryError,
    ObjectNotFoundError,
    SequenceMismatchError,
    UnconsumedCallsError,
    UnknownObjectError,
)
from callbook.registry import ObjectRegistry
from callbook.sequence import CallSequence


class Calculator(ABC):
    """Capability the code under test depends on."""

    @abstractmethod
    def reset(self) -> None:
        """Clear the accumulator."""

    @abstractmethod
    def add(self, a: int, b: int) -> int:
        """Add two numbers."""

    @abstractmethod
    def multiply(self, a: int, b: int) -> int:
        """Multiply two numbers."""


class RealCalculator(Calculator):
    """The production implementation."""

    def reset(self) -> None:
        pass

    def add(self, a: int, b: int) -> int:
        return a + b

    def multiply(self, a: int, b: int) -> int:
        if b < 0:
            raise ValueError("negative factor")
        return a * b


class RecordingCalculator(Calculator):
    """Forwards to a real calculator and records every call."""

    def __init__(self, inner: Calculator, sequence: CallSequence) -> None:
        self._inner = inner
        self._sequence = sequence

    def reset(self) -> None:
        self._inner.reset()
        self._sequence.record("Reset")

    def add(self, a: int, b: int) -> int:
        result = self._inner.add(a, b)
        self._sequence.record("Add", {"a": a, "b": b}, result=result)
        return result

    def multiply(self, a: int, b: int) -> int:
        try:
            result = self._inner.multiply(a, b)
        except ValueError as exc:
            self._sequence.record("Multiply", {"a": a, "b": b}, error=exc)
            raise
        self._sequence.record("Multiply", {"a": a, "b": b}, result=result)
        return result


class ReplayingCalculator(Calculator):
    """Answers every call from a call sequence."""

    def __init__(self, sequence: CallSequence) -> None:
        self._sequence = sequence

    def reset(self) -> None:
        self._sequence.match_next("Reset")

    def add(self, a: int, b: int) -> int:
        return self._sequence.match_next("Add", {"a": a, "b": b}, int)

    def multiply(self, a: int, b: int) -> int:
        return self._sequence.match_next("Multiply", {"a": a, "b": b}, int)


def add_then_multiply(calc: Calculator) -> tuple[int, int]:
    """Code under test."""
    return calc.add(2, 3), calc.multiply(2, 3)


ADD_MULTIPLY_TEXT = (
    "🦜 Add:\n"
    "  🔸 a: 2\n"
    "  🔸 b: 3\n"
    "  🔹 Returns: 5\n"
    "\n"
    "🦜 Multiply:\n"
    "  🔸 a: 2\n"
    "  🔸 b: 3\n"
    "  🔹 Returns: 6\n"
)


class TestRecordThenReplay:
    """Tests for recording a run and replaying its text."""

    def test_recorded_text_replays(self, registry: ObjectRegistry) -> None:
        """Text recorded from the real object drives an identical replay."""
        recorder = CallSequence(None, registry)
        assert add_then_multiply(RecordingCalculator(RealCalculator(), recorder)) == (5, 6)
        text = recorder.render()
        assert text == ADD_MULTIPLY_TEXT

        replay = CallSequence(text, registry)
        assert add_then_multiply(ReplayingCalculator(replay)) == (5, 6)
        replay.verify_all_expected_consumed()
        assert replay.render() == text

    def test_recorded_exception_replays(self, registry: ObjectRegistry) -> None:
        """A raised exception is recorded and raised again on replay."""
        recorder = CallSequence(None, registry)
        with pytest.raises(ValueError):
            RecordingCalculator(RealCalculator(), recorder).multiply(2, -1)
        assert 'Throws: ValueError("negative factor")' in recorder.render()

        replay = CallSequence(recorder.render(), registry)
        with pytest.raises(ValueError, match="negative factor"):
            ReplayingCalculator(replay).multiply(2, -1)


class TestSequenceFidelity:
    """Tests for ordering guarantees."""

    def test_in_order(self, registry: ObjectRegistry) -> None:
        """Add then Multiply replays 5 then 6."""
        calc = ReplayingCalculator(CallSequence(ADD_MULTIPLY_TEXT, registry))
        assert calc.add(2, 3) == 5
        assert calc.multiply(2, 3) == 6

    def test_out_of_order(self, registry: ObjectRegistry) -> None:
        """Multiply first fails before any value returns."""
        sequence = CallSequence(ADD_MULTIPLY_TEXT, registry)
        with pytest.raises(SequenceMismatchError):
            ReplayingCalculator(sequence).multiply(2, 3)
        assert sequence.produced == ()

    def test_argument_deferral(self, registry: ObjectRegistry) -> None:
        """Add(99, 1) still returns 5; only the rendering differs."""
        sequence = CallSequence(ADD_MULTIPLY_TEXT, registry)
        assert ReplayingCalculator(sequence).add(99, 1) == 5
        rendered = sequence.render()
        assert "  🔸 a: 99\n  🔸 b: 1\n  🔹 Returns: 5\n" in rendered

    def test_too_few_calls(self, registry: ObjectRegistry) -> None:
        """Stopping early is caught by the final check."""
        sequence = CallSequence(ADD_MULTIPLY_TEXT, registry)
        ReplayingCalculator(sequence).add(2, 3)
        with pytest.raises(UnconsumedCallsError) as exc_info:
            sequence.verify_all_expected_consumed()
        assert exc_info.value.remaining == ["Multiply(a: 2, b: 3)"]


class TestResetAddScenario:
    """Reset() then Add(5, 3) against a two-call text."""

    TEXT = "🦜 Reset:\n\n🦜 Add:\n  🔸 a: 5\n  🔸 b: 3\n  🔹 Returns: 8\n"

    def test_scenario(self, registry: ObjectRegistry) -> None:
        """Both calls replay and the sequence is fully consumed."""
        sequence = CallSequence(self.TEXT, registry)
        calc = ReplayingCalculator(sequence)
        calc.reset()
        assert calc.add(5, 3) == 8
        sequence.verify_all_expected_consumed()
        assert sequence.render() == self.TEXT

    def test_extra_call(self, registry: ObjectRegistry) -> None:
        """A third call reports that no calls remain."""
        sequence = CallSequence(self.TEXT, registry)
        calc = ReplayingCalculator(sequence)
        calc.reset()
        calc.add(5, 3)
        with pytest.raises(CallsExhaustedError) as exc_info:
            calc.multiply(1, 1)
        assert "No calls remain for Multiply" in exc_info.value.message


class TestSuppliedSubstitutes:
    """Tests for substitutes handed out by the registry."""

    def test_auto_substitutes_share_sequence(self, registry: ObjectRegistry) -> None:
        """Generated substitutes replay from the same sequence with unique ids."""
        sequence = CallSequence(ADD_MULTIPLY_TEXT, registry)
        registry.supply_auto(Calculator, lambda cap: ReplayingCalculator(sequence))

        first = registry.request(Calculator)
        second = registry.request(Calculator)

        assert first is not second
        assert re.match(r"^Calculator_\d+$", registry.lookup_id(first))
        assert re.match(r"^Calculator_\d+$", registry.lookup_id(second))
        assert first.add(2, 3) == 5
        assert second.multiply(2, 3) == 6

    def test_queued_then_persistent(self, registry: ObjectRegistry) -> None:
        """Queued objects are used up before the persistent one."""
        persistent, queued = RealCalculator(), RealCalculator()
        registry.supply_persistent(Calculator, persistent)
        registry.supply_queued(Calculator, queued)
        assert registry.request(Calculator) is queued
        assert registry.request(Calculator) is persistent

    def test_substitute_returned_by_reference(self, registry: ObjectRegistry) -> None:
        """A supplied object written as <id:...> replays as itself."""
        calc = RealCalculator()
        registry.supply_persistent(Calculator, calc, "calc")

        recorder = CallSequence(None, registry)
        recorder.record("GetCalculator", result=registry.request(Calculator))
        assert "Returns: <id:calc>" in recorder.render()

        replay = CallSequence(recorder.render(), registry)
        assert replay.match_next("GetCalculator", (), Calculator) is calc


class TestUnknownHandling:
    """Tests for references that cannot be replayed."""

    def test_unregistered_object_recorded_as_unknown(self, registry: ObjectRegistry) -> None:
        """Recording an unregistered object makes the text unreplayable."""
        recorder = CallSequence(None, registry)
        recorder.record("GetCalculator", result=RealCalculator())
        text = recorder.render()
        assert "<unknown:RealCalculator>" in text
        with pytest.raises(UnknownObjectError):
            CallSequence(text, registry)

    def test_missing_id_with_empty_registry(self) -> None:
        """An empty registry reports the id as not found."""
        sequence = CallSequence("🦜 Get:\n  🔹 Returns: <id:x>\n", ObjectRegistry())
        with pytest.raises(ObjectNotFoundError) as exc_info:
            sequence.match_next("Get", (), Any)
        assert not isinstance(exc_info.value, NoRegistryError)
        assert "not found in registry" in exc_info.value.message

    def test_missing_registry(self) -> None:
        """Without a registry the error says so."""
        sequence = CallSequence("🦜 Get:\n  🔹 Returns: <id:x>\n")
        with pytest.raises(NoRegistryError) as exc_info:
            sequence.match_next("Get", (), Any)
        assert "no registry provided" in exc_info.value.message
