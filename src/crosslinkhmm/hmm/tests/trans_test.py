import unittest as ut

import numpy as np

from crosslinkhmm.core.error import IncompatibleValuesError
from crosslinkhmm.core.logs import Level, restore_config, set_config
from crosslinkhmm.hmm.states import State
from crosslinkhmm.hmm.trans import (INIT_PROBS,
                                    INIT_TRANS,
                                    TransitionMatrix,
                                    floor_enriched_to_crosslink)


class TestFloorEnrichedToCrosslink(ut.TestCase):

    def test_above_floor(self):
        row = np.array([0.1, 0.6, 0.3])
        self.assertIs(floor_enriched_to_crosslink(row, 0.01), row)

    def test_below_floor(self):
        row = np.array([0.2, 0.8, 0.])
        floored = floor_enriched_to_crosslink(row, 0.1)
        self.assertTrue(np.allclose(floored, [0.18, 0.72, 0.1]))
        self.assertAlmostEqual(floored.sum(), 1.)
        # The row given is unchanged.
        self.assertEqual(row[State.CROSSLINK], 0.)

    def test_only_crosslink(self):
        floored = floor_enriched_to_crosslink(np.array([0., 0., 0.]), 0.1)
        self.assertTrue(np.allclose(floored, [0., 0.9, 0.1]))


class TestTransitionMatrix(ut.TestCase):

    def test_defaults(self):
        trans = TransitionMatrix()
        self.assertTrue(np.array_equal(trans.matrix, INIT_TRANS))
        self.assertTrue(np.array_equal(trans.init, INIT_PROBS))
        self.assertTrue(np.allclose(trans.matrix.sum(axis=1), 1.))

    def test_exact(self):
        matrix = np.array([[0.7, 0.2, 0.1],
                           [0.1, 0.8, 0.1],
                           [0.3, 0.3, 0.4]])
        trans = TransitionMatrix(matrix, [0.5, 0.3, 0.2])
        self.assertTrue(np.array_equal(trans.matrix, matrix))

    @restore_config
    def test_normalize(self):
        set_config(verbosity=Level.FATAL)
        trans = TransitionMatrix(np.ones((3, 3)), [2., 1., 1.])
        self.assertTrue(np.allclose(trans.matrix, 1. / 3.))
        self.assertTrue(np.allclose(trans.init, [0.5, 0.25, 0.25]))

    def test_invalid(self):
        self.assertRaises(IncompatibleValuesError,
                          TransitionMatrix, np.ones((2, 2)))
        self.assertRaises(IncompatibleValuesError,
                          TransitionMatrix, None, [1., 0.])
        self.assertRaises(IncompatibleValuesError,
                          TransitionMatrix, -INIT_TRANS)
        self.assertRaises(IncompatibleValuesError,
                          TransitionMatrix, np.zeros((3, 3)))

    def test_power(self):
        trans = TransitionMatrix()
        self.assertTrue(np.allclose(trans.power(1), INIT_TRANS))
        self.assertTrue(np.allclose(trans.power(3),
                                    INIT_TRANS @ INIT_TRANS @ INIT_TRANS))
        self.assertRaises(ValueError, trans.power, 0)

    def test_log_matrices(self):
        trans = TransitionMatrix()
        gaps = np.array([1, 1, 4, 1, 2])
        log_matrices, steps = trans.log_matrices(gaps)
        self.assertEqual(log_matrices.shape, (3, 3, 3))
        self.assertListEqual(steps.tolist(), [0, 0, 2, 0, 1])
        for gap, step in zip(gaps, steps, strict=True):
            self.assertTrue(np.allclose(np.exp(log_matrices[step]),
                                        trans.power(int(gap))))

    def test_log_matrices_extended(self):
        log_matrices, _ = TransitionMatrix().log_matrices(np.ones(3, int),
                                                          np.longdouble)
        self.assertEqual(log_matrices.dtype, np.longdouble)

    def test_update(self):
        trans = TransitionMatrix()
        counts = np.array([[8., 1., 1.],
                           [2., 6., 2.],
                           [1., 1., 2.]])
        trans.update(counts, counts, np.array([3., 1., 0.]), 1.e-4)
        self.assertTrue(np.allclose(trans.matrix,
                                    counts / counts.sum(axis=1,
                                                        keepdims=True)))
        self.assertTrue(np.allclose(trans.init, [0.75, 0.25, 0.]))

    def test_update_masked(self):
        trans = TransitionMatrix()
        counts = np.array([[8., 1., 1.],
                           [2., 6., 2.],
                           [1., 1., 2.]])
        masked = np.zeros((3, 3))
        masked[State.ENRICHED] = [0., 3., 1.]
        trans.update(counts, masked, np.array([1., 0., 0.]), 1.e-4)
        # The enriched row keeps its probability of returning to the
        # non-enriched state and splits the rest 3:1.
        self.assertTrue(np.allclose(trans.matrix[State.ENRICHED],
                                    [0.2, 0.6, 0.2]))

    def test_update_floor(self):
        trans = TransitionMatrix()
        counts = np.array([[8., 1., 1.],
                           [5., 5., 0.],
                           [1., 1., 2.]])
        trans.update(counts, counts, np.zeros(3), 0.01)
        self.assertAlmostEqual(trans.matrix[State.ENRICHED, State.CROSSLINK],
                               0.01)
        self.assertTrue(np.allclose(trans.matrix.sum(axis=1), 1.))
        # Without any first positions, the initial probabilities stay.
        self.assertTrue(np.array_equal(trans.init, INIT_PROBS))

    def test_update_empty_row(self):
        trans = TransitionMatrix()
        counts = np.array([[8., 1., 1.],
                           [2., 6., 2.],
                           [0., 0., 0.]])
        trans.update(counts, counts, np.zeros(3), 1.e-4)
        self.assertTrue(np.allclose(trans.matrix[State.CROSSLINK],
                                    INIT_TRANS[State.CROSSLINK]))

    def test_copy(self):
        trans = TransitionMatrix()
        copy = trans.copy()
        copy.matrix[0, 0] = 0.
        self.assertEqual(trans.matrix[0, 0], INIT_TRANS[0, 0])


if __name__ == "__main__":
    ut.main(verbosity=2)
