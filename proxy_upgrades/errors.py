class OrchestrationError(Exception):
    """Base class for failures raised while deploying or upgrading a proxy."""


class DeploymentFailed(OrchestrationError):
    """Raised when a constructor reverts or a deployment transaction is lost."""


class InitializationFailed(OrchestrationError):
    """Raised when a post-deployment initializer reverts."""


class UpgradeRejected(OrchestrationError):
    """Raised when an upgrade call reverts before it is included in a block."""


class ImplementationNotUpgradeable(UpgradeRejected):
    """
    Raised when a UUPS upgrade targets an implementation that does not carry
    the self-upgrade entry point; the proxy would be stuck on it forever.
    """


class UpgradeFailed(OrchestrationError):
    """Raised when an upgrade transaction was mined but reverted."""


class UpgradeTimeout(OrchestrationError):
    """Raised when an upgrade receipt is not available within the acceptance timeout."""


class UpgradeNotVerified(OrchestrationError):
    """Raised when storage does not resolve to the new implementation after an upgrade."""


class MalformedStorageWord(OrchestrationError, ValueError):
    """Raised when a storage word does not hold a zero-padded address."""


class StageFailed(OrchestrationError):
    """Wraps the failure of a single lifecycle stage."""

    def __init__(self, stage, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Stage {stage.value} failed: {cause.__class__.__name__}: {cause}")
