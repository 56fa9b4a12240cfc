import unittest as ut

import numpy as np

from crosslinkhmm.core.error import ObservationsError
from crosslinkhmm.core.obs import Chain


class TestChain(ut.TestCase):

    def test_minimal(self):
        chain = Chain([1, 0, 3], [10., 5.5, 2.])
        self.assertEqual(len(chain), 3)
        self.assertFalse(chain.has_signal)
        self.assertEqual(chain.num_bin_covars, 0)
        self.assertEqual(chain.num_gamma_covars, 0)
        self.assertListEqual(chain.gaps.tolist(), [1, 1, 1])

    def test_trunc_floor_n(self):
        chain = Chain([1, 0, 3], [10.7, 5.5, 2.])
        self.assertListEqual(chain.trunc_floor_n.tolist(), [10, 5, 3])

    def test_gaps(self):
        chain = Chain([1, 1, 1], [5, 5, 5], positions=[10, 11, 15])
        self.assertListEqual(chain.gaps.tolist(), [1, 1, 4])

    def test_covars(self):
        chain = Chain([1, 2],
                      [5, 5],
                      signal=[0.5, 2.],
                      bin_covars=[0.1, 0.2],
                      gamma_covars=[[1., 2.], [3., 4.]])
        self.assertTrue(chain.has_signal)
        self.assertEqual(chain.num_bin_covars, 1)
        self.assertEqual(chain.num_gamma_covars, 2)

    def test_immutable(self):
        counts = np.array([1, 2])
        chain = Chain(counts, [5., 5.])
        self.assertRaises(ValueError, chain.trunc_counts.__setitem__, 0, 9)
        # The array given is not frozen.
        counts[0] = 9
        self.assertEqual(chain.trunc_counts[0], 1)

    def test_invalid(self):
        self.assertRaises(ObservationsError, Chain, [], [])
        self.assertRaises(ObservationsError, Chain, [1, 2], [5.])
        self.assertRaises(ObservationsError, Chain, [1, -2], [5., 5.])
        self.assertRaises(ObservationsError, Chain, [1.5, 2], [5., 5.])
        self.assertRaises(ObservationsError, Chain, [1, 2], [5., np.nan])
        self.assertRaises(ObservationsError, Chain, [1, 2], [5., 5.],
                          signal=[1.])
        self.assertRaises(ObservationsError, Chain, [1, 2], [5., 5.],
                          positions=[3, 3])
        self.assertRaises(ObservationsError, Chain, [1, 2], [5., 5.],
                          bin_covars=[[1.], [2.], [3.]])


if __name__ == "__main__":
    ut.main(verbosity=2)
