"""
Module for representing ASCII biological alphabets
"""
from typing import Union, Final, ClassVar

import numpy as np

from edgefilter.containers.seq import Seq
from edgefilter.lib.resources import RESOURCES


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class AlphabetError(Exception):
    """Raised when an alphabet is invalid or text cannot be encoded with it."""


# Classes --------------------------------------------------------------------------------------------------------------
class Alphabet:
    """
    A class to represent an alphabet of ASCII symbols.

    Symbols are encoded as ``uint8`` indices in creation order, so ``Alphabet.RNA5``
    encodes A=0, C=1, G=2, U=3, N=4.
    """
    __slots__ = ('_data', '_lookup_table', '_trans_table', '_delete_bytes', '_decode_table')
    DTYPE: Final = np.uint8
    INVALID: Final = np.iinfo(DTYPE).max
    MAX_LEN: Final = INVALID + 1
    ENCODING: Final = 'ascii'

    RNA5: ClassVar['Alphabet']

    def __init__(self, symbols: bytes, aliases: dict[bytes, bytes] = None):
        """
        Initializes an Alphabet.

        Args:
            symbols: The symbols in the alphabet as bytes.
            aliases: Optional mapping of extra characters to valid ones (e.g. {b'T': b'U'}).

        Raises:
            AlphabetError: If symbols are not ASCII, too long, contain duplicates, or an alias is invalid.
        """
        if not symbols.isascii(): raise AlphabetError('Alphabet symbols must be a valid ASCII string')
        if len(symbols) >= self.MAX_LEN:
            raise AlphabetError(f'Alphabet size cannot exceed {self.MAX_LEN - 1} symbols ({self.DTYPE})')
        if len(set(symbols.upper())) != len(symbols): raise AlphabetError('Alphabet contains duplicate symbols')

        self._data: np.ndarray = np.frombuffer(symbols, dtype=self.DTYPE)

        # Build Lookup Table
        self._lookup_table = np.full(self.MAX_LEN, self.INVALID, dtype=self.DTYPE)
        indices = np.arange(len(symbols), dtype=self.DTYPE)
        self._lookup_table[np.frombuffer(symbols.upper(), dtype=self.DTYPE)] = indices
        self._lookup_table[np.frombuffer(symbols.lower(), dtype=self.DTYPE)] = indices

        if aliases:
            for src, dst in aliases.items():
                if len(src) != 1 or len(dst) != 1: raise AlphabetError("Aliases must be single bytes")
                dst_idx = self._lookup_table[ord(dst)]
                if dst_idx == self.INVALID: raise AlphabetError(f"Alias target {dst} not in alphabet")
                self._lookup_table[ord(src.upper())] = dst_idx
                self._lookup_table[ord(src.lower())] = dst_idx

        # Build Translation Tables
        self._trans_table = self._lookup_table.tobytes()
        self._delete_bytes = np.where(self._lookup_table == self.INVALID)[0].astype(self.DTYPE).tobytes()

        decode_map = np.zeros(self.MAX_LEN, dtype=self.DTYPE)
        decode_map[:len(self._data)] = self._data
        self._decode_table = decode_map.tobytes()

    def __len__(self):
        return len(self._data)

    def __contains__(self, item):
        try:
            if isinstance(item, (int, np.integer)):
                return self._lookup_table[item] != self.INVALID
            if isinstance(item, (str, bytes)):
                if len(item) != 1: return False
                val = ord(item) if isinstance(item, str) else item[0]
                return self._lookup_table[val] != self.INVALID
        except (IndexError, ValueError, TypeError):
            pass
        return False

    def __repr__(self):
        return f"Alphabet({self._data.tobytes().decode(self.ENCODING)})"

    def __eq__(self, other):
        if self is other: return True
        if not isinstance(other, Alphabet): return False
        return np.array_equal(self._data, other._data)

    def __hash__(self):
        return hash(self._data.tobytes())

    def encode(self, text: bytes) -> np.ndarray:
        """
        Encodes a byte string to an array of symbol indices.

        Characters outside the alphabet (and its aliases) are dropped; use ``seq_from``
        for strict encoding.

        Args:
            text: The text to encode as bytes.

        Returns:
            A numpy array of encoded indices.
        """
        return np.frombuffer(text.translate(self._trans_table, delete=self._delete_bytes), dtype=self.DTYPE)

    def decode(self, encoded: np.ndarray) -> bytes:
        """Decodes an array of indices back to bytes.

        Args:
            encoded: The numpy array of indices (uint8).

        Returns:
            The decoded bytes string.
        """
        if encoded.dtype != self.DTYPE:
            encoded = encoded.astype(self.DTYPE, copy=False)
        return encoded.tobytes().translate(self._decode_table)

    def new_seq(self, data: np.ndarray) -> 'Seq':
        """
        Factory method. The ONLY valid way to create a Seq.
        """
        return Seq(data, self, _validation_token=self)

    def seq_from(self, data: Union['Seq', str, bytes, np.ndarray]) -> 'Seq':
        """Creates a Seq object from various input types, ensuring correct encoding.

        Args:
            data: The input data. Can be a ``Seq``, string, bytes, or numpy array of encoded indices.

        Returns:
            A new ``Seq`` object with this alphabet.

        Raises:
            AlphabetError: If the input data contains symbols not in the alphabet.

        Examples:
            >>> Alphabet.RNA5.seq_from('acgt')
            ACGU
        """
        if isinstance(data, Seq):
            if data.alphabet != self: raise AlphabetError(f'Sequence has a different alphabet "{data.alphabet}"')
            return data
        if isinstance(data, np.ndarray):
            if not np.issubdtype(data.dtype, np.integer):
                raise AlphabetError(f'Encoded sequences must hold integer indices, got {data.dtype}')
            if data.ndim != 1: raise AlphabetError(f'Encoded sequences must be 1D, got shape {data.shape}')
            if len(data) and (data.min() < 0 or data.max() >= len(self)):
                raise AlphabetError(f'Encoded sequence contains indices outside {self}')
            return self.new_seq(np.array(data, dtype=self.DTYPE))
        if isinstance(data, str): data = data.encode(self.ENCODING)
        encoded = self.encode(data)
        if len(encoded) != len(data):
            bad = sorted(set(data.translate(None, delete=data.translate(None, delete=self._delete_bytes))))
            raise AlphabetError(f'Symbols {bytes(bad)} are not in {self}')
        return self.new_seq(encoded.copy())

    def empty_seq(self) -> 'Seq':
        """Returns an empty sequence with this alphabet."""
        return self.new_seq(np.empty(0, dtype=self.DTYPE))

    def random_seq(self, rng: np.random.Generator = None, length: int = None, min_len: int = 5,
                   max_len: int = 500) -> 'Seq':
        """
        Generates a random sequence of uniformly drawn symbols.

        Args:
            rng: Random number generator, defaults to the shared one.
            length: Exact length; if None, drawn from ``[min_len, max_len]``.
            min_len: Minimum length when ``length`` is None.
            max_len: Maximum length when ``length`` is None.

        Returns:
            A random ``Seq``.
        """
        if rng is None: rng = RESOURCES.rng
        if length is None: length = int(rng.integers(min_len, max_len + 1))
        if length < 0: raise ValueError(f'Sequence length must be non-negative, got {length}')
        return self.new_seq(rng.integers(0, len(self), size=length, dtype=self.DTYPE))


# Initialize Standard Alphabets
Alphabet.RNA5 = Alphabet(b'ACGUN', aliases={
    b'T': b'U', b'R': b'N', b'Y': b'N', b'S': b'N', b'W': b'N', b'K': b'N', b'M': b'N', b'B': b'N', b'D': b'N',
    b'H': b'N', b'V': b'N', b'-': b'N', b'.': b'N'
})
