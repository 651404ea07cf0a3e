"""Outcome of sending a batch, with the attempts it took."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Attempt:
    success: bool
    request_id: str = ""
    error_code: str = ""
    error_message: str = ""
    time_stamp_ms: int = 0
    last_attempt_cost_ms: int = 0


@dataclass
class Result:
    """Reserved attempts of a batch and whether it was finally delivered."""

    attempts: list[Attempt] = field(default_factory=list)
    successful: bool = False

    def is_successful(self) -> bool:
        return self.successful

    def reserved_attempts(self) -> list[Attempt]:
        return self.attempts

    def _last(self) -> Attempt | None:
        return self.attempts[-1] if self.attempts else None

    def error_code(self) -> str:
        last = self._last()
        return last.error_code if last else ""

    def error_message(self) -> str:
        last = self._last()
        return last.error_message if last else ""

    def request_id(self) -> str:
        last = self._last()
        return last.request_id if last else ""

    def time_stamp_ms(self) -> int:
        last = self._last()
        return last.time_stamp_ms if last else 0

    def last_attempt_cost_ms(self) -> int:
        last = self._last()
        return last.last_attempt_cost_ms if last else 0

    def add_attempt(self, attempt: Attempt) -> None:
        self.attempts.append(attempt)