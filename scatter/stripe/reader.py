"""
scatter • Stripe — Reader

Pull successive fixed-size windows ("stripes") of `k * block_size` bytes from
a binary stream, zero-padding the final short window:

  • You give it a readable binary stream and `StripeParams`.
  • Each call to `next()` returns a `Stripe` whose `data` is exactly
    `params.stripe_bytes` long, annotated with the number of meaningful bytes.
  • The last stripe is flagged `is_final`; after it, `next()` returns None.

The reader looks one stripe ahead, so an input whose size is an exact multiple
of the stripe size still flags its last full stripe as final and never yields
an empty trailing stripe. An empty input yields no stripes at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

from ..erasure.params import StripeParams
from ..errors import ScatterIOError

# --------------------------------------------------------------------------- #
# Model
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class Stripe:
    """
    One windowed slice of the input.

    Attributes:
      index:     0-based stripe sequence number
      data:      bytes of length exactly `stripe_bytes` (zero-padded if short)
      data_len:  number of meaningful bytes in `data`
      is_final:  True for the last stripe of the input
    """

    index: int
    data: bytes
    data_len: int
    is_final: bool

    @property
    def padding(self) -> int:
        return len(self.data) - self.data_len


# --------------------------------------------------------------------------- #
# Reader
# --------------------------------------------------------------------------- #


class StripeReader:
    def __init__(self, stream: BinaryIO, params: StripeParams) -> None:
        self._stream = stream
        self._params = params
        self._index = 0
        self._done = False
        self._pending: Optional[bytes] = None

    @property
    def stripes_read(self) -> int:
        return self._index

    def _read_full(self, size: int) -> bytes:
        # Streams such as pipes may return short reads before EOF.
        parts = []
        remaining = size
        try:
            while remaining > 0:
                chunk = self._stream.read(remaining)
                if not chunk:
                    break
                parts.append(chunk)
                remaining -= len(chunk)
        except OSError as exc:
            raise ScatterIOError.from_exc(exc, data={"stripe": self._index}) from exc
        return b"".join(parts)

    def next(self) -> Optional[Stripe]:
        """Return the next stripe, or None once the final stripe was delivered."""
        if self._done:
            return None

        size = self._params.stripe_bytes
        chunk = self._pending if self._pending is not None else self._read_full(size)
        self._pending = None

        if not chunk:
            self._done = True
            return None

        if len(chunk) < size:
            is_final = True
        else:
            ahead = self._read_full(size)
            is_final = not ahead
            self._pending = ahead or None

        data_len = len(chunk)
        if data_len < size:
            data = chunk + bytes(size - data_len)
        else:
            data = chunk

        stripe = Stripe(index=self._index, data=data, data_len=data_len, is_final=is_final)
        self._index += 1
        self._done = is_final
        return stripe

    def __iter__(self) -> Iterator[Stripe]:
        while True:
            stripe = self.next()
            if stripe is None:
                return
            yield stripe


__all__ = ["Stripe", "StripeReader"]
