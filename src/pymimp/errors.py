"""
Exception types raised by pymimp.

Caller-input problems are raised before any scoring work starts. Data
problems that only affect individual rows (reference mismatches, undefined
scores) are never raised; they are filtered and counted instead.
"""


class PymimpError(Exception):
    """Base class for all pymimp errors."""


class InputValidationError(PymimpError, ValueError):
    """Invalid caller input such as an out-of-range threshold."""


class LengthMismatch(InputValidationError):
    """Sequence and position vectors of incompatible lengths."""


class UnknownModel(PymimpError, KeyError):
    """Requested kinase model (or model data set) is not available.

    Attributes:
        requested: Names that were asked for
        available: Names present in the model store
    """

    def __init__(self, requested, available):
        self.requested = list(requested)
        self.available = sorted(available)
        super().__init__(
            "Invalid kinase names {}. Please choose from the following: {}".format(
                ",".join(self.requested), ",".join(self.available)
            )
        )

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class ModelDataError(PymimpError):
    """A model bundle could not be decoded into kinase models."""
