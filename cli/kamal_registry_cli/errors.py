from __future__ import annotations


class KamalRegistryError(RuntimeError):
    def __init__(self, message: str, *, stdout: str | None = None, stderr: str | None = None) -> None:
        super().__init__(message)
        self.stdout = stdout or ""
        self.stderr = stderr or ""


class PrerequisiteError(KamalRegistryError):
    """A required local tool is missing and could not be installed."""


class ConfigMissingError(KamalRegistryError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Configuration not found: {path}. Run `kamal-registry setup` first.")
        self.path = path


class ConfigInvalidError(KamalRegistryError):
    pass


class StageFailedError(KamalRegistryError):
    def __init__(
            self,
            label: str,
            returncode: int,
            *,
            stdout: str | None = None,
            stderr: str | None = None,
    ) -> None:
        super().__init__(f"Stage failed: {label} (exit code {returncode})", stdout=stdout, stderr=stderr)
        self.label = label
        self.returncode = returncode


class ReadinessTimeout(KamalRegistryError):
    def __init__(self, what: str, timeout: float) -> None:
        super().__init__(f"Timed out waiting for {what} readiness after {timeout:g}s")
        self.what = what
        self.timeout = timeout
