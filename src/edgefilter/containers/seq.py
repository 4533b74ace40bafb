"""Immutable, alphabet-aware sequence container."""
from typing import Union

import numpy as np


# Classes --------------------------------------------------------------------------------------------------------------
class Seq:
    """
    Immutable, alphabet-aware sequence container storing encoded integers (uint8).

    ``Seq`` objects should be created via ``Alphabet.seq_from()`` or ``Alphabet.random_seq()``
    rather than directly, to ensure encoding consistency.

    Args:
        data: A numpy uint8 array of encoded symbol indices.
        alphabet: The ``Alphabet`` that owns this sequence.
        _validation_token: Internal token (must be the alphabet) to prevent
            direct construction.

    Examples:
        >>> seq = Alphabet.RNA5.seq_from(b'AUGCGA')
        >>> len(seq)
        6
        >>> bytes(seq)
        b'AUGCGA'
        >>> reversed(seq)
        AGCGUA
    """
    __slots__ = ('_data', '_alphabet', '_hash')
    def __init__(self, data: np.ndarray, alphabet: 'Alphabet', _validation_token: object = None):
        if _validation_token is not alphabet:
            raise PermissionError("Seq objects must be created via an Alphabet")
        self._alphabet = alphabet
        self._data = data
        self._hash = None
        self._data.flags.writeable = False

    @property
    def alphabet(self) -> 'Alphabet':
        """Returns the alphabet used for encoding/decoding."""
        return self._alphabet

    @property
    def encoded(self) -> np.ndarray:
        """Returns the underlying encoded integer array (zero-copy, read-only)."""
        return self._data

    def __bytes__(self) -> bytes: return self._alphabet.decode(self._data)
    def __len__(self): return self._data.shape[0]
    def __str__(self): return self.__bytes__().decode('ascii')

    def __repr__(self):
        if len(self) <= 14: return str(self)
        head = self._alphabet.decode(self._data[:7]).decode('ascii')
        tail = self._alphabet.decode(self._data[-7:]).decode('ascii')
        return f"{head}...{tail}"

    # Reversal is a view over the same buffer; symbols are not complemented
    def __reversed__(self) -> 'Seq': return self._alphabet.new_seq(self._data[::-1])

    def __getitem__(self, item: Union[int, slice]) -> Union[int, 'Seq']:
        if isinstance(item, slice): return self._alphabet.new_seq(self._data[item])
        return int(self._data[item])

    def __eq__(self, other):
        if self is other: return True
        if not isinstance(other, Seq): return False
        return self._alphabet == other._alphabet and np.array_equal(self._data, other._data)

    def __hash__(self):
        if self._hash is None: self._hash = hash((self._alphabet, self._data.tobytes()))
        return self._hash
