import unittest as ut
from itertools import product

import numpy as np

from crosslinkhmm.core.logs import Level, restore_config, set_config
from crosslinkhmm.core.lse import LogSumExpTable
from crosslinkhmm.core.obs import Chain
from crosslinkhmm.core.precision import DOUBLE, EXTENDED
from crosslinkhmm.emit.gamma import Gamma
from crosslinkhmm.emit.ztbin import ZTBIN, ztbin_log_pmf
from crosslinkhmm.hmm.engine import (calc_log_emissions,
                                     forward_backward,
                                     viterbi)
from crosslinkhmm.hmm.params import ModelParams
from crosslinkhmm.hmm.states import NUM_STATES, State


class ImpossibleGamma(Gamma):

    def log_density(self, chain: Chain):
        return np.full(len(chain), -np.inf)


def make_params():
    return ModelParams(ZTBIN("bin1", 0.02),
                       ZTBIN("bin2", 0.3),
                       Gamma("gamma1", 0.6, 1., 0.1, 3.),
                       Gamma("gamma2", 3., 1., 1., 30.))


def make_chain(signal: bool = True):
    return Chain([0, 1, 4, 0, 2],
                 [10., 12., 9., 15., 20.],
                 signal=[0.2, 1.5, 4., 0.5, 2.] if signal else None,
                 positions=[1, 2, 3, 6, 7])


def brute_force(chain: Chain, params: ModelParams):
    """ Enumerate every path of states. """
    emit = np.exp(calc_log_emissions(chain, params))
    num_pos = len(chain)
    trans = [params.trans.power(int(gap)) for gap in chain.gaps]
    posteriors = np.zeros((num_pos, NUM_STATES))
    counts = np.zeros((NUM_STATES, NUM_STATES))
    total = 0.
    best_prob = -1.
    best_path = None
    for path in product(range(NUM_STATES), repeat=num_pos):
        prob = params.trans.init[path[0]] * emit[0, path[0]]
        for t in range(1, num_pos):
            prob *= trans[t][path[t - 1], path[t]] * emit[t, path[t]]
        total += prob
        for t, state in enumerate(path):
            posteriors[t, state] += prob
        for t in range(1, num_pos):
            if chain.gaps[t] == 1:
                counts[path[t - 1], path[t]] += prob
        if prob > best_prob:
            best_prob = prob
            best_path = path
    return (posteriors / total,
            np.log(total),
            counts / total,
            np.array(best_path),
            np.log(best_prob))


class TestCalcLogEmissions(ut.TestCase):

    def test_no_starts(self):
        params = make_params()
        chain = make_chain()
        log_emit = calc_log_emissions(chain, params)
        self.assertEqual(log_emit.shape, (5, NUM_STATES))
        # No read starts: crosslink is impossible, and the binomial of
        # the other states contributes nothing.
        self.assertEqual(log_emit[0, State.CROSSLINK], -np.inf)
        self.assertAlmostEqual(log_emit[0, State.NON_ENRICHED],
                               params.gamma1.log_density(chain)[0])
        self.assertAlmostEqual(log_emit[0, State.ENRICHED],
                               params.gamma2.log_density(chain)[0])

    def test_starts(self):
        params = make_params()
        chain = make_chain()
        log_emit = calc_log_emissions(chain, params)
        log_bin2 = ztbin_log_pmf(np.array([4]), np.array([9]), 0.3)[0]
        self.assertAlmostEqual(log_emit[2, State.CROSSLINK],
                               params.gamma2.log_density(chain)[2] + log_bin2)

    def test_no_signal(self):
        params = make_params()
        log_emit = calc_log_emissions(make_chain(False), params)
        self.assertListEqual(log_emit[0].tolist(), [0., 0., -np.inf])
        self.assertEqual(log_emit[1, State.NON_ENRICHED],
                         log_emit[1, State.ENRICHED])

    @restore_config
    def test_impossible(self):
        set_config(verbosity=Level.FATAL)
        params = make_params()
        params.gamma1 = ImpossibleGamma("gamma1", 0.5, 1., 0.1, 3.)
        params.gamma2 = ImpossibleGamma("gamma2", 2., 1., 1., 30.)
        chain = Chain([0, 2], [10., 10.], signal=[1., 1.])
        log_emit = calc_log_emissions(chain, params)
        self.assertTrue(np.array_equal(log_emit, np.zeros((2, NUM_STATES))))


class TestForwardBackward(ut.TestCase):

    def test_matches_brute_force(self):
        params = make_params()
        for signal in [True, False]:
            with self.subTest(signal=signal):
                chain = make_chain(signal)
                posteriors, log_like, counts, _, _ = brute_force(chain, params)
                result = forward_backward(chain, params, None)
                self.assertTrue(np.allclose(result.posteriors, posteriors))
                self.assertAlmostEqual(result.log_like, log_like)
                self.assertTrue(np.allclose(result.counts, counts))
                self.assertTrue(np.allclose(result.counts_masked, counts))

    def test_posteriors_sum_to_one(self):
        result = forward_backward(make_chain(), make_params(), None)
        self.assertTrue(np.allclose(result.posteriors.sum(axis=1), 1.))
        self.assertTrue(np.all(result.posteriors >= 0.))

    def test_table(self):
        params = make_params()
        chain = make_chain()
        exact = forward_backward(chain, params, None)
        table = LogSumExpTable(600000, -20.)
        approx = forward_backward(chain, params, table)
        self.assertTrue(np.allclose(approx.posteriors,
                                    exact.posteriors,
                                    atol=1.e-3))
        self.assertAlmostEqual(approx.log_like, exact.log_like, delta=1.e-3)

    def test_extended(self):
        params = make_params()
        chain = make_chain()
        double = forward_backward(chain, params, None, DOUBLE)
        extended = forward_backward(chain, params, None, EXTENDED)
        self.assertEqual(extended.posteriors.dtype, np.longdouble)
        self.assertTrue(np.allclose(extended.posteriors.astype(float),
                                    double.posteriors))
        self.assertAlmostEqual(extended.log_like, double.log_like)

    def test_masked_counts(self):
        params = make_params()
        chain = make_chain()
        result = forward_backward(chain, params, None,
                                  n_threshold_for_trans_p=11.)
        _, _, counts, _, _ = brute_force(chain, params)
        self.assertTrue(np.allclose(result.counts, counts))
        # Of the three unit steps, only those into coverage 12 and 20
        # pass the threshold.
        self.assertAlmostEqual(result.counts.sum(), 3.)
        self.assertAlmostEqual(result.counts_masked.sum(), 2.)

    def test_one_position(self):
        chain = Chain([2], [10.], signal=[3.])
        result = forward_backward(chain, make_params(), None)
        self.assertEqual(result.posteriors.shape, (1, NUM_STATES))
        self.assertAlmostEqual(result.posteriors.sum(), 1.)
        self.assertEqual(result.counts.sum(), 0.)


class TestViterbi(ut.TestCase):

    def test_matches_brute_force(self):
        params = make_params()
        for signal in [True, False]:
            with self.subTest(signal=signal):
                chain = make_chain(signal)
                *_, best_path, best_log_prob = brute_force(chain, params)
                path, log_prob = viterbi(chain, params)
                self.assertListEqual(path.tolist(), best_path.tolist())
                self.assertAlmostEqual(log_prob, best_log_prob)

    def test_extended(self):
        params = make_params()
        chain = make_chain()
        path, log_prob = viterbi(chain, params, EXTENDED)
        expect_path, expect_log_prob = viterbi(chain, params, DOUBLE)
        self.assertListEqual(path.tolist(), expect_path.tolist())
        self.assertAlmostEqual(log_prob, expect_log_prob)


if __name__ == "__main__":
    ut.main(verbosity=2)
