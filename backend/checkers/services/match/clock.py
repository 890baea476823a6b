DEFAULT_TURN_SECONDS = 30


class TurnClock:
    """Per-session turn countdown.

    Idle -> Running -> (tick)* -> Expired -> Running, or Running -> Stopped
    once the match has a winner.

    The clock itself never schedules anything. Every time it (re)starts it
    hands out a new generation token; whoever drives the ticks keeps that
    token and stops as soon as `is_current` turns False, so a superseded or
    stopped clock can never tick again.
    """

    def __init__(self, duration: int = DEFAULT_TURN_SECONDS):
        self.duration = duration
        self.seconds_remaining = duration
        self.running = False
        self._generation = 0

    @property
    def token(self) -> int:
        return self._generation

    def is_current(self, token: int) -> bool:
        return self.running and token == self._generation

    def start(self, has_winner: bool = False):
        """Start counting down; returns the new token, or None if nothing started."""
        if self.running or has_winner:
            return None
        self.seconds_remaining = self.duration
        self.running = True
        self._generation += 1
        return self._generation

    def stop(self) -> None:
        self.running = False
        self._generation += 1

    def reset(self, has_winner: bool = False):
        self.stop()
        self.seconds_remaining = self.duration
        return self.start(has_winner)

    def tick(self) -> bool:
        """Count down one second. True when the clock just expired."""
        if not self.running:
            return False
        self.seconds_remaining = max(0, self.seconds_remaining - 1)
        return self.seconds_remaining == 0
