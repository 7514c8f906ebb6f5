from typing import Iterable


class TrendCastError(Exception):
    """Base class for errors surfaced to callers of the forecasting engine."""


class InvalidInput(TrendCastError, ValueError):
    """Empty series, malformed data point or out-of-range horizon."""


class _UnknownKey(TrendCastError, ValueError):
    kind = 'key'

    def __init__(self, key, options: Iterable[str]):
        self.key = key
        self.options = list(options)
        super().__init__(f"unknown {self.kind} '{key}'; expected one of: {', '.join(self.options)}")


class UnknownAlgorithm(_UnknownKey):
    kind = 'algorithm'


class UnknownMethod(_UnknownKey):
    kind = 'anomaly method'
