"""PCM conversion utilities."""
import numpy as np

def pcm16le_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """
    Convert PCM16 little-endian mono bytes to float32 in [-1.0, 1.0).

    A trailing odd byte (truncated sample) is dropped.
    No resampling. No channel mixing.
    """
    if len(pcm_bytes) % 2 != 0:
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    audio_i16 = np.frombuffer(pcm_bytes, dtype="<i2")
    return audio_i16.astype(np.float32) / 32768.0


def rms(f32: np.ndarray) -> float:
    """Root-mean-square energy of a float32 frame; 0.0 for an empty frame."""
    if f32.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(f32))))


def silence(num_bytes: int) -> bytes:
    """PCM16 digital silence of the given byte length."""
    return bytes(max(0, num_bytes))
