"""
Exception hierarchy. Everything raised on purpose derives from TfDriftError
so the CLI can report it and exit with a non-zero status.
"""
from typing import Optional


class TfDriftError(Exception):
    pass


class ConfigError(TfDriftError):
    pass


class HierarchyError(TfDriftError):
    pass


class URIParseError(TfDriftError):
    def __init__(self, uri: str, reason: str):
        self.uri = uri
        self.reason = reason
        super().__init__(f"invalid object URI {uri!r}: {reason}")


class DownloadError(TfDriftError):
    def __init__(self, bucket: str, name: Optional[str], reason: str):
        self.bucket = bucket
        self.name = name
        self.reason = reason
        target = f"gs://{bucket}/{name}" if name else f"gs://{bucket}"
        super().__init__(f"storage request for {target} failed: {reason}")


class DecodeError(TfDriftError):
    def __init__(self, reason: str, uri: Optional[str] = None):
        self.reason = reason
        self.uri = uri
        prefix = f"{uri}: " if uri else ""
        super().__init__(f"{prefix}failed to decode terraform state: {reason}")
