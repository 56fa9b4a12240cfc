import unittest as ut
from pathlib import Path
from tempfile import TemporaryDirectory

import numpy as np
import pandas as pd

from crosslinkhmm.bw.em import Calls
from crosslinkhmm.call.io import (calls_to_frame,
                                  read_observations,
                                  select_chroms,
                                  write_calls)
from crosslinkhmm.core.error import ObservationsError
from crosslinkhmm.core.obs import Chain

OBSERVATIONS = """chrom\tpos\tstrand\tk\tn\tsignal\tbcov1\tgcov1
chr2\t5\t+\t1\t20\t0.5\t0.1\t1.0
chr1\t12\t+\t0\t10\t0.2\t0.0\t0.5
chr1\t10\t+\t3\t15\t1.5\t0.3\t0.2
chr1\t11\t+\t2\t14\t2.5\t0.2\t0.1
chr1\t20\t+\t1\t8\t0.1\t0.0\t0.0
chr1\t10\t-\t4\t30\t3.0\t0.4\t0.9
"""


class TestReadObservations(ut.TestCase):

    def setUp(self):
        self._tmpdir = TemporaryDirectory()
        self.tmpdir = Path(self._tmpdir.name)

    def tearDown(self):
        self._tmpdir.cleanup()

    def write_text(self, text: str):
        file = self.tmpdir.joinpath("obs.tsv")
        file.write_text(text)
        return file

    def test_read(self):
        chains = read_observations(self.write_text(OBSERVATIONS))
        self.assertListEqual([(chain.chrom, chain.strand, len(chain))
                              for chain in chains],
                             [("chr1", "+", 3),
                              ("chr1", "+", 1),
                              ("chr1", "-", 1),
                              ("chr2", "+", 1)])
        first = chains[0]
        self.assertListEqual(first.positions.tolist(), [10, 11, 12])
        self.assertListEqual(first.trunc_counts.tolist(), [3, 2, 0])
        self.assertListEqual(first.n_estimates.tolist(), [15., 14., 10.])
        self.assertListEqual(first.signal.tolist(), [1.5, 2.5, 0.2])
        self.assertEqual(first.num_bin_covars, 1)
        self.assertEqual(first.num_gamma_covars, 1)
        self.assertEqual(first.name, "chr1(+):10-12")

    def test_max_gap(self):
        chains = read_observations(self.write_text(OBSERVATIONS), max_gap=8)
        self.assertListEqual([len(chain) for chain in chains], [4, 1, 1])
        self.assertListEqual(chains[0].gaps.tolist(), [1, 1, 1, 8])
        self.assertRaises(ValueError,
                          read_observations,
                          self.write_text(OBSERVATIONS),
                          0)

    def test_minimal(self):
        chains = read_observations(self.write_text("chrom\tpos\tk\tn\n"
                                                   "chr1\t1\t1\t10\n"
                                                   "chr1\t2\t0\t12\n"))
        chain, = chains
        self.assertEqual(chain.strand, ".")
        self.assertFalse(chain.has_signal)
        self.assertEqual(chain.num_bin_covars, 0)

    def test_missing_column(self):
        self.assertRaises(ObservationsError,
                          read_observations,
                          self.write_text("chrom\tpos\tk\nchr1\t1\t1\n"))

    def test_duplicate_position(self):
        self.assertRaises(ObservationsError,
                          read_observations,
                          self.write_text("chrom\tpos\tk\tn\n"
                                          "chr1\t1\t1\t10\n"
                                          "chr1\t1\t0\t12\n"))


class TestSelectChroms(ut.TestCase):

    def test_select(self):
        chains = [Chain([1], [10.], chrom="chr1"),
                  Chain([1], [10.], chrom="chr2"),
                  Chain([1], [10.], chrom="chr1")]
        self.assertEqual(len(select_chroms(chains, ["chr1"])), 2)
        self.assertEqual(len(select_chroms(chains, ["chr3"])), 0)
        self.assertEqual(len(select_chroms(chains, [])), 3)


class TestCalls(ut.TestCase):

    def make_calls(self):
        chain = Chain([1, 5], [10., 10.],
                      positions=[7, 8], chrom="chr1", strand="+")
        return [[Calls(chain=chain,
                       states=np.array([0, 2]),
                       scores=np.array([1.5, 2.5]),
                       posteriors=np.array([[0.8, 0.15, 0.05],
                                            [0.1, 0.1, 0.8]]))]]

    def test_calls_to_frame(self):
        frame = calls_to_frame(self.make_calls())
        self.assertListEqual(frame.columns.tolist(),
                             ["rep", "chrom", "strand", "pos", "state",
                              "score", "posterior_non_enriched",
                              "posterior_enriched", "posterior_crosslink"])
        self.assertListEqual(frame["state"].tolist(),
                             ["non_enriched", "crosslink"])
        self.assertListEqual(frame["pos"].tolist(), [7, 8])
        self.assertListEqual(frame["posterior_crosslink"].tolist(),
                             [0.05, 0.8])

    def test_no_calls(self):
        frame = calls_to_frame([[]])
        self.assertEqual(len(frame), 0)
        self.assertIn("score", frame.columns)

    def test_write_calls(self):
        with TemporaryDirectory() as tmpdir:
            file = write_calls(self.make_calls(),
                               Path(tmpdir).joinpath("out", "calls.tsv"))
            frame = pd.read_csv(file, sep="\t")
            self.assertListEqual(frame["score"].tolist(), [1.5, 2.5])


if __name__ == "__main__":
    ut.main(verbosity=2)
