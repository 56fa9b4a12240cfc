import unittest as ut

import numpy as np

from crosslinkhmm.core.error import IncompatibleValuesError
from crosslinkhmm.core.logs import Level, restore_config, set_config
from crosslinkhmm.solve.brent import maximize_bounded


class TestMaximizeBounded(ut.TestCase):

    def test_interior(self):
        x = maximize_bounded(lambda v: -(v - 1.3) ** 2, 0., 5., max_iter=100)
        self.assertAlmostEqual(x, 1.3, places=4)

    def test_log_likelihood(self):
        # Maximum of a log likelihood of a Poisson rate.
        data = np.array([2, 3, 4, 3])
        x = maximize_bounded(lambda v: np.sum(data * np.log(v) - v),
                             0.1, 10., max_iter=100)
        self.assertAlmostEqual(x, data.mean(), places=4)

    def test_lower_bound(self):
        x = maximize_bounded(lambda v: -v, 2., 3., max_iter=100)
        self.assertEqual(x, 2.)

    def test_upper_bound(self):
        x = maximize_bounded(lambda v: v, 2., 3., max_iter=100)
        self.assertEqual(x, 3.)

    def test_equal_bounds(self):
        x = maximize_bounded(lambda v: -(v - 1.) ** 2, 4., 4., max_iter=100)
        self.assertEqual(x, 4.)

    def test_non_finite(self):
        x = maximize_bounded(lambda v: np.log(v - 1.) - v,
                             0., 5., max_iter=100)
        self.assertGreaterEqual(x, 0.)
        self.assertLessEqual(x, 5.)
        self.assertAlmostEqual(x, 2., places=3)

    @restore_config
    def test_max_iter(self):
        set_config(verbosity=Level.FATAL)
        x = maximize_bounded(lambda v: -(v - 1.3) ** 2, 0., 5., max_iter=1)
        self.assertGreaterEqual(x, 0.)
        self.assertLessEqual(x, 5.)

    def test_invalid(self):
        self.assertRaises(IncompatibleValuesError,
                          maximize_bounded, lambda v: v, 3., 2., max_iter=10)
        self.assertRaises(ValueError,
                          maximize_bounded, lambda v: v, 2., 3., max_iter=0)


if __name__ == "__main__":
    ut.main(verbosity=2)
