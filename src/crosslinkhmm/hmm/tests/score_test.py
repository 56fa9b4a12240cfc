import unittest as ut

import numpy as np

from crosslinkhmm.hmm.score import calc_scores

POSTERIORS = np.array([[0.7, 0.2, 0.1],
                       [0.1, 0.3, 0.6],
                       [0., 0., 1.]])


class TestCalcScores(ut.TestCase):

    def test_max_over_second(self):
        scores = calc_scores(POSTERIORS, 0)
        self.assertAlmostEqual(scores[0], np.log(0.7 / 0.2))
        self.assertAlmostEqual(scores[1], np.log(0.6 / 0.3))
        self.assertTrue(np.isfinite(scores[2]))
        self.assertGreater(scores[2], scores[1])

    def test_crosslink_over_enriched(self):
        scores = calc_scores(POSTERIORS, 1)
        self.assertAlmostEqual(scores[0], np.log(0.1 / 0.2))
        self.assertAlmostEqual(scores[1], np.log(0.6 / 0.3))

    def test_crosslink_log_odds(self):
        scores = calc_scores(POSTERIORS, 2)
        self.assertAlmostEqual(scores[0], np.log(0.1 / 0.9))
        self.assertAlmostEqual(scores[1], np.log(0.6 / 0.4))
        self.assertTrue(np.isfinite(scores[2]))

    def test_crosslink_prob(self):
        scores = calc_scores(POSTERIORS, 3)
        self.assertListEqual(scores.tolist(), [0.1, 0.6, 1.])

    def test_invalid(self):
        self.assertRaises(ValueError, calc_scores, POSTERIORS, 4)


if __name__ == "__main__":
    ut.main(verbosity=2)
