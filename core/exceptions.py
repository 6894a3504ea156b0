# core/exceptions.py


class VideoDedupError(Exception):
    """Base class for deduplication errors"""


class DecodeError(VideoDedupError):
    """A frame image could not be opened, decoded or resampled"""

    def __init__(self, path, reason: str = ""):
        self.path = str(path)
        self.reason = reason
        message = f"Cannot decode frame: {self.path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class LengthMismatchError(VideoDedupError):
    """Two fingerprints of different bit-length were compared"""

    def __init__(self, length_a: int, length_b: int):
        self.length_a = length_a
        self.length_b = length_b
        super().__init__(
            f"Fingerprint length mismatch: {length_a} bits vs {length_b} bits"
        )


class EmptySetError(VideoDedupError):
    """An asset with no fingerprints reached the comparator"""

    def __init__(self, asset_id: str = None):
        self.asset_id = asset_id
        if asset_id is None:
            super().__init__("Cannot compare an empty fingerprint set")
        else:
            super().__init__(f"Asset has no frames to compare: {asset_id}")


class KeyframeExtractionError(VideoDedupError):
    """Keyframes could not be sampled from a video"""

    def __init__(self, video_path, reason: str = ""):
        self.video_path = str(video_path)
        self.reason = reason
        message = f"Failed to extract keyframes from {self.video_path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
