"""
Sparse alignment-edge filtering for pairs of RNA sequences.

Two affine-gap (Gotoh) dynamic-programming passes, one forward and one over the
reversed sequences, are combined to find every pair of positions that lies on an
alignment scoring within a tolerance of the optimum.

Examples:
    >>> from edgefilter import Alphabet, ScoreMatrix, ScoringScheme, EdgeFilter
    >>> scheme = ScoringScheme(ScoreMatrix.rna5(match=2, mismatch=-1), gap_open=-3, gap_extend=-1)
    >>> result = EdgeFilter(scheme).pair(Alphabet.RNA5.seq_from('AUG'), Alphabet.RNA5.seq_from('AUG'))
    >>> result.coordinates().tolist()
    [[0, 0], [1, 1], [2, 2]]
"""
from edgefilter.lib.resources import RESOURCES


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class EdgeFilterWarning(Warning): pass


from edgefilter.core.alphabet import Alphabet, AlphabetError
from edgefilter.containers.seq import Seq
from edgefilter.engines.pairwise import ScoreMatrix, ScoringScheme, GotohMatrix, NEG_INF
from edgefilter.engines.edges import (EdgeFilter, PairEdges, generate_edges, EdgeFilterError, SymmetryError,
                                      EmptyPairError)

__all__ = ['RESOURCES', 'EdgeFilterWarning', 'Alphabet', 'AlphabetError', 'Seq',
           'ScoreMatrix', 'ScoringScheme', 'GotohMatrix', 'NEG_INF', 'EdgeFilter', 'PairEdges', 'generate_edges',
           'EdgeFilterError', 'SymmetryError', 'EmptyPairError']
