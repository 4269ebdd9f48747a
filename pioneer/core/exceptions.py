class PioneerError(Exception):
    """Base class for errors raised by pioneer-utils."""


class EmptyOptionsError(PioneerError, ValueError):
    pass


class InvalidWeightError(PioneerError, ValueError):
    pass


class SelectionAssertionError(PioneerError, AssertionError):
    """The weighted walk finished without choosing a branch.

    This is an internal defect, never a caller error.
    """


class InvalidEventError(PioneerError, ValueError):
    pass


class AddonNotFoundError(PioneerError, LookupError):
    pass


class MissingPublicKeyError(PioneerError, LookupError):
    pass
