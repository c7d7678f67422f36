class MRLError(Exception): ...


class InvalidTimezone(MRLError): ...


class InvalidRange(MRLError): ...


class InvalidPagination(MRLError): ...


class UnknownRuleSetId(MRLError, KeyError):
    def __str__(self) -> str:
        # KeyError quotes its message; keep it readable
        return str(self.args[0]) if self.args else ""


class RuleSetError(MRLError): ...


class IngestError(MRLError): ...


def require(condition: bool, message: str, exc: type[MRLError] = MRLError):
    """Raise the given exception if condition is False."""
    if not condition:
        raise exc(message)
