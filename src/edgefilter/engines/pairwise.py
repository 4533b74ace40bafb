"""Affine-gap (Gotoh) dynamic programming over full prefix grids."""
from dataclasses import dataclass
from typing import Union, Iterable, Final

import numpy as np

from edgefilter.containers.seq import Seq
from edgefilter.core.alphabet import Alphabet
from edgefilter.lib.resources import jit


# Constants ------------------------------------------------------------------------------------------------------------
SCORE_DTYPE: Final = np.int64
# Unreachable state. Far below any real score, and far enough above the dtype minimum that adding
# penalties to it never wraps around.
NEG_INF: Final = int(np.iinfo(SCORE_DTYPE).min // 4)


# Classes --------------------------------------------------------------------------------------------------------------
class ScoreMatrix:
    """
    Represents a substitution matrix for alignment, indexed by encoded symbols.

    Attributes:
        _data (np.ndarray): The raw matrix data.

    Examples:
        >>> m = ScoreMatrix.build(4, match=2, mismatch=-2)
        >>> int(m[0, 0]), int(m[0, 1])
        (2, -2)
    """
    _DTYPE = np.int32
    __slots__ = ('_data',)

    def __init__(self, data: Union[np.ndarray, Iterable]):
        data = np.asarray(data)
        if data.ndim != 2 or data.shape[0] != data.shape[1]:
            raise ValueError(f'Score matrix must be square, got shape {data.shape}')
        if not np.issubdtype(data.dtype, np.integer):
            if not np.array_equal(data, np.round(data)):
                raise ValueError('Score matrix must hold integers; use ScoringScheme.scaled for real-valued scores')
        limits = np.iinfo(self._DTYPE)
        if data.size and (data.min() < limits.min or data.max() > limits.max):
            raise ValueError(f'Score matrix values must lie within [{limits.min}, {limits.max}]; '
                             f'use a smaller precision factor')
        self._data = np.ascontiguousarray(data, dtype=self._DTYPE)
        self._data.flags.writeable = False

    def __getitem__(self, item): return self._data[item]
    def __len__(self): return self._data.shape[0]
    def __repr__(self): return f"ScoreMatrix{self._data.shape}"

    def __eq__(self, other):
        if not isinstance(other, ScoreMatrix): return False
        return np.array_equal(self._data, other._data)

    def __hash__(self): return hash(self._data.tobytes())

    @property
    def shape(self): return self._data.shape

    @property
    def is_symmetric(self) -> bool:
        return bool(np.array_equal(self._data, self._data.T))

    @classmethod
    def build(cls, n: int, match: int = 1, mismatch: int = -1):
        """Builds a simple match/mismatch matrix."""
        m = np.full((n, n), mismatch, dtype=cls._DTYPE)
        np.fill_diagonal(m, match)
        return cls(m)

    @classmethod
    def rna5(cls, match: int = 1, mismatch: int = -1, ambiguous: int = 0):
        """
        Builds a match/mismatch matrix over ``Alphabet.RNA5``.

        Any pair involving the ambiguity symbol ``N`` (including N against N) scores ``ambiguous``.
        """
        m = cls.build(len(Alphabet.RNA5), match, mismatch)._data.copy()
        n = Alphabet.RNA5.encode(b'N')[0]
        m[n, :] = ambiguous
        m[:, n] = ambiguous
        return cls(m)


@dataclass(frozen=True)
class ScoringScheme:
    """
    Substitution scores and affine gap penalties on a scaled integer axis.

    Penalties carry their own sign: a gap of length ``k`` costs ``gap_open + gap_extend * (k - 1)``,
    so both are normally negative. ``factor`` is the precision factor the scores were scaled by;
    divide by it to report scores in real units.

    Examples:
        >>> scheme = ScoringScheme(ScoreMatrix.rna5(2, -1), gap_open=-3, gap_extend=-1)
        >>> scheme.score(0, 0)
        2
    """
    matrix: ScoreMatrix
    gap_open: int
    gap_extend: int
    factor: int = 1

    def __post_init__(self):
        if not isinstance(self.matrix, ScoreMatrix):
            raise TypeError(f'Expected a ScoreMatrix, got {type(self.matrix).__name__}')
        for name in ('gap_open', 'gap_extend', 'factor'):
            value = getattr(self, name)
            if not isinstance(value, (int, np.integer)) or isinstance(value, bool):
                raise TypeError(f'{name} must be an integer, got {value!r}')
            object.__setattr__(self, name, int(value))
        if self.factor < 1: raise ValueError(f'Precision factor must be >= 1, got {self.factor}')

    @classmethod
    def scaled(cls, matrix: Union[np.ndarray, Iterable], gap_open: float, gap_extend: float,
               factor: int = 100) -> 'ScoringScheme':
        """
        Builds a scheme from real-valued scores, multiplied by ``factor`` and rounded to integers.

        Examples:
            >>> s = ScoringScheme.scaled(np.eye(5) * 1.5 - 0.25, gap_open=-2.5, gap_extend=-0.5)
            >>> s.gap_open, s.gap_extend, int(s.matrix[0, 0])
            (-250, -50, 125)
        """
        matrix = np.rint(np.asarray(matrix, dtype=np.float64) * factor)
        return cls(ScoreMatrix(matrix), int(round(gap_open * factor)), int(round(gap_extend * factor)), factor)

    @property
    def n_symbols(self) -> int: return len(self.matrix)

    def score(self, x: int, y: int) -> int:
        """Substitution score of encoded symbol ``x`` against ``y``."""
        return int(self.matrix[x, y])

    def to_real(self, value) -> float:
        """Converts a scaled score back to real units."""
        return value / self.factor

    def check_seq(self, seq: Seq):
        if not isinstance(seq, Seq): raise TypeError(f'Expected a Seq, got {type(seq).__name__}')
        if len(seq) and int(seq.encoded.max()) >= self.n_symbols:
            raise ValueError(f'Sequence alphabet {seq.alphabet} exceeds the {self.n_symbols}x{self.n_symbols} '
                             f'score matrix')


class GotohMatrix:
    """
    Full three-state affine-gap DP grid for two sequences.

    Row ``a`` and column ``b`` correspond to prefixes of length ``a`` of ``seq_a`` and ``b`` of ``seq_b``.
    ``M`` holds the best score ending in a match/mismatch, ``H`` ending in a gap in ``seq_a`` (a symbol of
    ``seq_b`` consumed) and ``V`` ending in a gap in ``seq_b``. The grid is filled once, on construction.

    Examples:
        >>> rna = Alphabet.RNA5
        >>> scheme = ScoringScheme(ScoreMatrix.rna5(2, -1), gap_open=-3, gap_extend=-1)
        >>> dp = GotohMatrix(rna.seq_from('AUG'), rna.seq_from('AUG'), scheme)
        >>> dp.optimal_score()
        6
        >>> dp.prefix_score(2, 0)
        -4
    """
    __slots__ = ('_len_a', '_len_b', '_m', '_h', '_v', '_best')

    def __init__(self, seq_a: Seq, seq_b: Seq, scheme: ScoringScheme):
        scheme.check_seq(seq_a)
        scheme.check_seq(seq_b)
        self._len_a = len(seq_a)
        self._len_b = len(seq_b)
        shape = (self._len_a + 1, self._len_b + 1)
        self._m = np.empty(shape, dtype=SCORE_DTYPE)
        self._h = np.empty(shape, dtype=SCORE_DTYPE)
        self._v = np.empty(shape, dtype=SCORE_DTYPE)
        _gotoh_fill_kernel(seq_a.encoded, seq_b.encoded, scheme.matrix[:, :].astype(SCORE_DTYPE),
                           SCORE_DTYPE(scheme.gap_open), SCORE_DTYPE(scheme.gap_extend), self._m, self._h, self._v)
        for arr in (self._m, self._h, self._v): arr.flags.writeable = False
        self._best = None

    def __repr__(self): return f"GotohMatrix({self._len_a}x{self._len_b}, optimum={self.optimal_score()})"

    @property
    def shape(self) -> tuple[int, int]: return self._m.shape

    @property
    def M(self) -> np.ndarray: return self._m

    @property
    def H(self) -> np.ndarray: return self._h

    @property
    def V(self) -> np.ndarray: return self._v

    def prefix_score(self, a: int, b: int) -> int:
        """
        Best score over all states for the prefixes of length ``a`` and ``b``.

        Raises:
            IndexError: If ``a`` is outside ``[0, len_a]`` or ``b`` outside ``[0, len_b]``.
        """
        if not (0 <= a <= self._len_a and 0 <= b <= self._len_b):
            raise IndexError(f'Prefix ({a}, {b}) outside grid [0, {self._len_a}] x [0, {self._len_b}]')
        return int(max(self._m[a, b], self._h[a, b], self._v[a, b]))

    def optimal_score(self) -> int:
        """Global optimum, i.e. ``prefix_score(len_a, len_b)``."""
        return self.prefix_score(self._len_a, self._len_b)

    def prefix_scores(self) -> np.ndarray:
        """Returns the read-only ``(len_a + 1, len_b + 1)`` grid of best scores over all states."""
        if self._best is None:
            self._best = np.maximum(np.maximum(self._m, self._h), self._v)
            self._best.flags.writeable = False
        return self._best


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _gotoh_fill_kernel(seq_a, seq_b, matrix, go, ge, M, H, V):
    """
    Fills the M/H/V grids in place. Row 0 and column 0 are pure gap prefixes, so
    the state that would need a predecessor outside the grid is marked unreachable.
    """
    len_a = seq_a.shape[0]
    len_b = seq_b.shape[0]

    M[0, 0] = 0
    H[0, 0] = NEG_INF
    V[0, 0] = NEG_INF

    for a in range(1, len_a + 1):
        gap = go + ge * (a - 1)
        M[a, 0] = gap
        H[a, 0] = NEG_INF
        V[a, 0] = gap

    for b in range(1, len_b + 1):
        gap = go + ge * (b - 1)
        M[0, b] = gap
        H[0, b] = gap
        V[0, b] = NEG_INF

    for a in range(1, len_a + 1):
        row = matrix[seq_a[a - 1]]
        for b in range(1, len_b + 1):
            M[a, b] = max(M[a - 1, b - 1], H[a - 1, b - 1], V[a - 1, b - 1]) + row[seq_b[b - 1]]
            H[a, b] = max(M[a, b - 1] + go, H[a, b - 1] + ge, V[a, b - 1] + go)
            V[a, b] = max(M[a - 1, b] + go, H[a - 1, b] + go, V[a - 1, b] + ge)
