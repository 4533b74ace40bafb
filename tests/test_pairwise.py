import numpy as np
import pytest
from edgefilter import Alphabet, ScoreMatrix, ScoringScheme, GotohMatrix, NEG_INF

RNA = Alphabet.RNA5


@pytest.fixture
def scheme():
    return ScoringScheme(ScoreMatrix.rna5(match=2, mismatch=-1), gap_open=-3, gap_extend=-1)


def _seq(text):
    return RNA.seq_from(text)


class TestScoreMatrix:
    def test_build(self):
        m = ScoreMatrix.build(3, match=4, mismatch=-2)
        np.testing.assert_array_equal(m[:, :], [[4, -2, -2], [-2, 4, -2], [-2, -2, 4]])
        assert m.is_symmetric

    def test_rna5_ambiguous(self):
        m = ScoreMatrix.rna5(match=2, mismatch=-1, ambiguous=0)
        n = RNA.encode(b'N')[0]
        assert m[0, 0] == 2
        assert m[0, 1] == -1
        assert np.all(m[n, :] == 0)
        assert np.all(m[:, n] == 0)

    def test_read_only(self):
        with pytest.raises(ValueError):
            ScoreMatrix.build(2)[:, :][0, 0] = 5

    def test_not_square(self):
        with pytest.raises(ValueError, match="square"):
            ScoreMatrix(np.zeros((2, 3)))

    def test_rejects_fractional(self):
        with pytest.raises(ValueError, match="integers"):
            ScoreMatrix([[0.5, 0], [0, 1]])

    def test_asymmetric(self):
        assert not ScoreMatrix([[1, 2], [0, 1]]).is_symmetric

    def test_rejects_values_beyond_int32(self):
        with pytest.raises(ValueError, match="within"):
            ScoreMatrix([[2 ** 31, 0], [0, 1]])
        with pytest.raises(ValueError, match="within"):
            ScoreMatrix(np.array([[-(2 ** 40), 0], [0, 1]], dtype=np.int64))

    def test_accepts_int32_limits(self):
        m = ScoreMatrix([[2 ** 31 - 1, 0], [0, -(2 ** 31)]])
        assert int(m[0, 0]) == 2 ** 31 - 1
        assert int(m[1, 1]) == -(2 ** 31)


class TestScoringScheme:
    def test_scaled(self):
        s = ScoringScheme.scaled(np.eye(5) * 1.5 - 0.25, gap_open=-2.5, gap_extend=-0.5, factor=100)
        assert s.gap_open == -250
        assert s.gap_extend == -50
        assert s.factor == 100
        assert s.score(0, 0) == 125
        assert s.score(0, 1) == -25
        assert s.to_real(-250) == pytest.approx(-2.5)

    def test_rejects_float_penalty(self):
        with pytest.raises(TypeError):
            ScoringScheme(ScoreMatrix.rna5(), gap_open=-2.5, gap_extend=-1)

    def test_rejects_bad_factor(self):
        with pytest.raises(ValueError, match="factor"):
            ScoringScheme(ScoreMatrix.rna5(), gap_open=-3, gap_extend=-1, factor=0)

    def test_rejects_plain_array(self):
        with pytest.raises(TypeError):
            ScoringScheme(np.eye(5, dtype=int), gap_open=-3, gap_extend=-1)

    def test_frozen(self, scheme):
        with pytest.raises(AttributeError):
            scheme.gap_open = -5

    def test_numpy_integer_penalties(self):
        s = ScoringScheme(ScoreMatrix.rna5(), gap_open=np.int32(-3), gap_extend=np.int64(-1))
        assert type(s.gap_open) is int

    def test_scaled_overflowing_factor(self):
        with pytest.raises(ValueError, match="precision factor"):
            ScoringScheme.scaled(np.eye(5) * 5.0 - 1.0, gap_open=-3.0, gap_extend=-1.0, factor=10 ** 9)

    def test_scaled_large_factor_keeps_scores(self):
        s = ScoringScheme.scaled(np.eye(5) * 2.0 - 1.0, gap_open=-3.0, gap_extend=-1.0, factor=10 ** 8)
        seq = Alphabet.RNA5.seq_from("AUG")
        assert s.score(0, 0) == 10 ** 8
        assert GotohMatrix(seq, seq, s).optimal_score() == 3 * 10 ** 8


class TestGotohBoundary:
    def test_origin(self, scheme):
        dp = GotohMatrix(_seq('ACGU'), _seq('GGA'), scheme)
        assert dp.M[0, 0] == 0
        assert dp.H[0, 0] == NEG_INF
        assert dp.V[0, 0] == NEG_INF
        assert dp.prefix_score(0, 0) == 0

    def test_first_column(self, scheme):
        dp = GotohMatrix(_seq('ACGU'), _seq('GGA'), scheme)
        for a in range(1, 5):
            assert dp.prefix_score(a, 0) == -3 - (a - 1)
            assert dp.H[a, 0] == NEG_INF
            assert dp.V[a, 0] == dp.M[a, 0]

    def test_first_row(self, scheme):
        dp = GotohMatrix(_seq('ACGU'), _seq('GGA'), scheme)
        for b in range(1, 4):
            assert dp.prefix_score(0, b) == -3 - (b - 1)
            assert dp.V[0, b] == NEG_INF
            assert dp.H[0, b] == dp.M[0, b]

    def test_shape(self, scheme):
        dp = GotohMatrix(_seq('ACGU'), _seq('GGA'), scheme)
        assert dp.shape == (5, 4)
        assert dp.M.flags.c_contiguous

    def test_matrices_read_only(self, scheme):
        dp = GotohMatrix(_seq('AC'), _seq('AC'), scheme)
        with pytest.raises(ValueError):
            dp.M[1, 1] = 0
        with pytest.raises(ValueError):
            dp.prefix_scores()[1, 1] = 0


class TestGotohScores:
    def test_identical(self, scheme):
        assert GotohMatrix(_seq('AUG'), _seq('AUG'), scheme).optimal_score() == 6

    def test_single_gap(self, scheme):
        # AUGC vs AUC: three matches and one gap
        assert GotohMatrix(_seq('AUGC'), _seq('AUC'), scheme).optimal_score() == 6 - 3

    def test_affine_prefers_one_long_gap(self, scheme):
        # AAUUU vs UUU: a gap of two costs -3 + -1
        assert GotohMatrix(_seq('AAUUU'), _seq('UUU'), scheme).optimal_score() == 6 - 4

    def test_gap_direction_switch_reopens(self):
        s = ScoringScheme(ScoreMatrix.rna5(match=1, mismatch=-10), gap_open=-3, gap_extend=-1)
        # A vs C can only be a mismatch (-10) or a gap in each direction (-3 + -3)
        assert GotohMatrix(_seq('A'), _seq('C'), s).optimal_score() == -6

    def test_empty_a(self, scheme):
        dp = GotohMatrix(RNA.empty_seq(), _seq('AUG'), scheme)
        assert dp.shape == (1, 4)
        assert dp.optimal_score() == -3 - 2

    def test_empty_b(self, scheme):
        assert GotohMatrix(_seq('A'), RNA.empty_seq(), scheme).optimal_score() == -3

    def test_both_empty(self, scheme):
        assert GotohMatrix(RNA.empty_seq(), RNA.empty_seq(), scheme).optimal_score() == 0

    def test_prefix_scores_match_subproblems(self, scheme):
        rng = np.random.default_rng(7)
        a = RNA.random_seq(rng, length=9)
        b = RNA.random_seq(rng, length=7)
        dp = GotohMatrix(a, b, scheme)
        grid = dp.prefix_scores()
        for i in range(len(a) + 1):
            for j in range(len(b) + 1):
                assert grid[i, j] == GotohMatrix(a[:i], b[:j], scheme).optimal_score()

    def test_forward_backward_symmetry(self, scheme):
        rng = np.random.default_rng(11)
        for _ in range(25):
            a = RNA.random_seq(rng, min_len=0, max_len=30)
            b = RNA.random_seq(rng, min_len=0, max_len=30)
            assert GotohMatrix(a, b, scheme).optimal_score() == \
                GotohMatrix(reversed(a), reversed(b), scheme).optimal_score()

    def test_symmetry_with_asymmetric_matrix(self):
        rng = np.random.default_rng(3)
        s = ScoringScheme(ScoreMatrix(rng.integers(-4, 5, size=(5, 5))), gap_open=-5, gap_extend=-2)
        a = RNA.random_seq(rng, length=20)
        b = RNA.random_seq(rng, length=14)
        assert GotohMatrix(a, b, s).optimal_score() == GotohMatrix(reversed(a), reversed(b), s).optimal_score()


class TestGotohQueries:
    @pytest.mark.parametrize('a,b', [(-1, 0), (0, -1), (4, 0), (0, 4), (5, 5)])
    def test_out_of_range(self, scheme, a, b):
        dp = GotohMatrix(_seq('AUG'), _seq('AUG'), scheme)
        with pytest.raises(IndexError):
            dp.prefix_score(a, b)

    def test_optimal_is_last_prefix(self, scheme):
        dp = GotohMatrix(_seq('AUGCA'), _seq('UGC'), scheme)
        assert dp.optimal_score() == dp.prefix_score(5, 3) == dp.prefix_scores()[-1, -1]

    def test_sequence_too_large_for_matrix(self):
        s = ScoringScheme(ScoreMatrix.build(4, 1, -1), gap_open=-2, gap_extend=-1)
        with pytest.raises(ValueError, match="exceeds"):
            GotohMatrix(_seq('AN'), _seq('A'), s)

    def test_rejects_text(self, scheme):
        with pytest.raises(TypeError):
            GotohMatrix('AUG', _seq('AUG'), scheme)
