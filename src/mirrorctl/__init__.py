"""mirrorctl — device monitoring and session control for scrcpy mirroring."""

__version__ = "0.1.0"
