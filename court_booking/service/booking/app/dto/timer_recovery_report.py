import attrs


@attrs.define(frozen=True)
class TimerRecoveryReport:
    expired: int = 0  # overdue bookings expired on the spot
    rearmed: int = 0  # bookings whose expiry timer was scheduled again
