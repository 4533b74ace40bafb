"""
Alignment-edge filtering: admits every position pair that lies on some alignment
scoring within a tolerance of the global optimum.
"""
from concurrent.futures import Executor
from dataclasses import dataclass
from itertools import combinations
from logging import getLogger
from typing import Literal, Optional, Sequence
from warnings import warn

import numpy as np

from edgefilter import EdgeFilterWarning
from edgefilter.containers.seq import Seq
from edgefilter.engines.pairwise import GotohMatrix, ScoringScheme
from edgefilter.lib.resources import RESOURCES

LOGGER = getLogger(__name__)


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class EdgeFilterError(Exception):
    """Base class for edge filtering failures of a single sequence pair."""


class SymmetryError(EdgeFilterError, AssertionError):
    """Raised when the forward and backward DP passes disagree on the optimal score."""


class EmptyPairError(EdgeFilterError, ValueError):
    """Raised when both sequences of a pair are empty and no identity score is defined."""


# Functions ------------------------------------------------------------------------------------------------------------
def generate_edges(edges: np.ndarray, seq_a: Seq, seq_b: Seq, scheme: ScoringScheme, suboptimal_diff: int) -> float:
    """
    Marks every position pair ``(a, b)`` whose best passing alignment scores at least
    ``optimum - suboptimal_diff``.

    The best alignment through the match of ``seq_a[a]`` with ``seq_b[b]`` is the forward
    prefix score at ``(a, b)``, plus the substitution score, plus the backward prefix score
    of the remaining suffixes (a DP over the reversed sequences).

    Args:
        edges: Boolean array of shape ``(len(seq_a), len(seq_b))``, updated in place. Cells are
            only ever set to True.
        seq_a: First sequence.
        seq_b: Second sequence.
        scheme: Substitution scores and gap penalties.
        suboptimal_diff: Non-negative tolerance below the optimum, in the scheme's scaled units.

    Returns:
        The optimal score in real units divided by the longer sequence length.

    Raises:
        ValueError: If ``edges`` has the wrong shape or dtype, or ``suboptimal_diff`` is negative.
        EmptyPairError: If both sequences are empty.
        SymmetryError: If the forward and backward optima differ.

    Examples:
        >>> rna = Alphabet.RNA5
        >>> scheme = ScoringScheme(ScoreMatrix.rna5(2, -1), gap_open=-3, gap_extend=-1)
        >>> mask = np.zeros((3, 3), dtype=bool)
        >>> generate_edges(mask, rna.seq_from('AUG'), rna.seq_from('AUG'), scheme, 0)
        2.0
        >>> mask.nonzero()[0].tolist()
        [0, 1, 2]
    """
    len_a, len_b = len(seq_a), len(seq_b)
    if not isinstance(edges, np.ndarray) or edges.dtype != np.bool_:
        raise ValueError('Edge mask must be a boolean numpy array')
    if edges.shape != (len_a, len_b):
        raise ValueError(f'Edge mask shape {edges.shape} does not match sequence lengths ({len_a}, {len_b})')
    if suboptimal_diff < 0: raise ValueError(f'Suboptimality tolerance must be non-negative, got {suboptimal_diff}')
    if len_a == 0 and len_b == 0: raise EmptyPairError('Cannot filter edges between two empty sequences')

    forward = GotohMatrix(seq_a, seq_b, scheme)
    backward = GotohMatrix(reversed(seq_a), reversed(seq_b), scheme)
    optimum = forward.optimal_score()
    if optimum != backward.optimal_score():
        raise SymmetryError(f'Forward optimum {optimum} differs from backward optimum {backward.optimal_score()}')

    threshold = optimum - suboptimal_diff
    fwd = forward.prefix_scores()[:len_a, :len_b]
    # Cell (a, b) needs the backward score at (len_a - a - 1, len_b - b - 1)
    bwd = backward.prefix_scores()[:len_a, :len_b][::-1, ::-1]
    sub = scheme.matrix[np.ix_(seq_a.encoded, seq_b.encoded)]
    edges[fwd + sub + bwd >= threshold] = True

    return scheme.to_real(optimum) / max(len_a, len_b)


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass(frozen=True, slots=True, eq=False)
class PairEdges:
    """
    Admitted edges of one sequence pair.

    Attributes:
        idx_a: Index of the first sequence in its batch.
        idx_b: Index of the second sequence in its batch.
        edges: Boolean mask of shape ``(len_a, len_b)``.
        identity: Optimal score per alignment column, in real units.
    """
    idx_a: int
    idx_b: int
    edges: np.ndarray
    identity: float

    @property
    def n_edges(self) -> int: return int(np.count_nonzero(self.edges))

    def coordinates(self) -> np.ndarray:
        """Returns an ``(n_edges, 2)`` array of admitted ``(a, b)`` position pairs in row-major order."""
        return np.argwhere(self.edges)


class EdgeFilter:
    """
    Reusable edge filter over a fixed scoring scheme and tolerance.

    The filter holds no mutable state, so one instance can serve many pairs concurrently.

    Examples:
        >>> scheme = ScoringScheme(ScoreMatrix.rna5(2, -1), gap_open=-3, gap_extend=-1)
        >>> seqs = [Alphabet.RNA5.seq_from(s) for s in ('AUG', 'AUGG', 'ACG')]
        >>> [(p.idx_a, p.idx_b) for p in EdgeFilter(scheme, 2).all_pairs(seqs)]
        [(0, 1), (0, 2), (1, 2)]
    """
    __slots__ = ('_scheme', '_suboptimal_diff')

    def __init__(self, scheme: ScoringScheme, suboptimal_diff: int = 0):
        if suboptimal_diff < 0: raise ValueError(f'Suboptimality tolerance must be non-negative, got {suboptimal_diff}')
        self._scheme = scheme
        self._suboptimal_diff = suboptimal_diff

    def __repr__(self): return f"EdgeFilter({self._scheme!r}, suboptimal_diff={self._suboptimal_diff})"

    @property
    def scheme(self) -> ScoringScheme: return self._scheme

    @property
    def suboptimal_diff(self) -> int: return self._suboptimal_diff

    def pair(self, seq_a: Seq, seq_b: Seq, idx_a: int = 0, idx_b: int = 1) -> PairEdges:
        """Filters one pair into a freshly allocated mask."""
        edges = np.zeros((len(seq_a), len(seq_b)), dtype=np.bool_)
        identity = generate_edges(edges, seq_a, seq_b, self._scheme, self._suboptimal_diff)
        LOGGER.debug('Pair %d-%d: %d of %d edges admitted, identity %.3f',
                     idx_a, idx_b, np.count_nonzero(edges), edges.size, identity)
        return PairEdges(idx_a, idx_b, edges, identity)

    def all_pairs(self, seqs: Sequence[Seq], on_error: Literal['raise', 'skip'] = 'raise',
                  pool: Optional[Executor] = None) -> list[PairEdges]:
        """
        Filters every unordered pair ``(i, j)`` with ``i < j``.

        Pairs are independent and are submitted to ``pool`` (the shared thread pool by default).
        Results are returned in row-major pair order.

        Args:
            seqs: The sequences.
            on_error: ``'raise'`` propagates the first failing pair; ``'skip'`` warns and omits it.
            pool: Executor to run pairs on.

        Returns:
            One ``PairEdges`` per successful pair.
        """
        if on_error not in ('raise', 'skip'): raise ValueError(f'Unknown error policy "{on_error}"')
        if pool is None: pool = RESOURCES.pool
        pairs = list(combinations(range(len(seqs)), 2))
        LOGGER.debug('Filtering edges for %d pairs of %d sequences', len(pairs), len(seqs))
        futures = [pool.submit(self.pair, seqs[i], seqs[j], i, j) for i, j in pairs]
        results = []
        for (i, j), future in zip(pairs, futures):
            try:
                results.append(future.result())
            except (EdgeFilterError, ValueError) as e:
                if on_error == 'raise':
                    for f in futures: f.cancel()
                    raise
                warn(f'Skipping sequence pair {i}-{j}: {e}', EdgeFilterWarning)
        return results
