class HatchrError(Exception):
    pass


class SourceUnavailable(HatchrError):
    """A provider call failed or timed out. Callers degrade to 'field absent'."""


class IdentityUnresolved(HatchrError):
    """No social identity could be found for a creator."""


class SignatureInvalid(HatchrError):
    """Webhook body does not match its HMAC signature."""


class ConfigMissing(HatchrError):
    """A required credential is not configured."""

    def __init__(self, setting: str) -> None:
        super().__init__(f"{setting} is not set")
        self.setting = setting


class PersistenceFailure(HatchrError):
    """A store write failed; state must not be assumed updated."""
