ErrorKind = {
    "DEVICE_UNAVAILABLE": "DeviceUnavailable",
    "CAPTURE_ERROR": "CaptureError",
    "EMPTY_INPUT": "EmptyInput",
    "STRUCTURING_FAILED": "StructuringFailed",
    "UNSUPPORTED_INTENT": "UnsupportedIntent",
    "PERSIST_FAILED": "PersistFailed",
    "TELEMETRY_UNAVAILABLE": "TelemetryUnavailable",
}


class KrishiError(Exception):
    """Base for every typed failure the pipeline reports."""

    kind = None

    def __init__(self, message=""):
        super().__init__(message or self.kind)
        self.message = message


class DeviceUnavailable(KrishiError):
    kind = ErrorKind["DEVICE_UNAVAILABLE"]


class CaptureError(KrishiError):
    kind = ErrorKind["CAPTURE_ERROR"]


class EmptyInput(KrishiError):
    kind = ErrorKind["EMPTY_INPUT"]


class StructuringFailed(KrishiError):
    kind = ErrorKind["STRUCTURING_FAILED"]

    def __init__(self, message="", transcript=None):
        super().__init__(message)
        self.transcript = transcript


class UnsupportedIntent(KrishiError):
    kind = ErrorKind["UNSUPPORTED_INTENT"]


class PersistFailed(KrishiError):
    kind = ErrorKind["PERSIST_FAILED"]


class TelemetryUnavailable(KrishiError):
    kind = ErrorKind["TELEMETRY_UNAVAILABLE"]
