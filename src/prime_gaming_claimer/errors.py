class AuthFailure(RuntimeError):
    """The browser session could not be signed in or the signed-in account could not be read."""


class ClaimUIFailure(RuntimeError):
    """An element needed to claim an offer did not show up."""


class EvidenceCaptureFailure(RuntimeError):
    """A screenshot could not be saved. The claim itself is still recorded."""
