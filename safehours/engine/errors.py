"""Parse errors raised inside the engine."""


class ParseError(ValueError):
    """Input could not be interpreted as a time or date."""

    def __init__(self, value: object, message: str) -> None:
        super().__init__(f"{message}: {value!r}")
        self.value = value


class TimeParseError(ParseError):
    """Value is not a strict HH:MM time of day."""

    def __init__(self, value: object) -> None:
        super().__init__(value, "Time does not match expected format (HH:MM)")


class DateParseError(ParseError):
    """Value is not a YYYY-MM-DD calendar date."""

    def __init__(self, value: object) -> None:
        super().__init__(value, "Date does not match expected format (YYYY-MM-DD)")
