import unittest as ut
from pathlib import Path
from tempfile import TemporaryDirectory

import numpy as np
import pandas as pd

from crosslinkhmm.call.main import run
from crosslinkhmm.core.logs import Level, restore_config, set_config
from crosslinkhmm.hmm.params import read_params


def write_observations(file: Path, spike: int, length: int = 40):
    counts = np.ones(length, dtype=int)
    coverage = np.full(length, 20)
    counts[spike] = 15
    coverage[spike] = 16
    pd.DataFrame({"chrom": "chr1",
                  "pos": np.arange(1, length + 1),
                  "strand": "+",
                  "k": counts,
                  "n": coverage}).to_csv(file, sep="\t", index=False)
    return file


class TestRun(ut.TestCase):

    def setUp(self):
        self._tmpdir = TemporaryDirectory()
        self.tmpdir = Path(self._tmpdir.name)

    def tearDown(self):
        self._tmpdir.cleanup()

    @restore_config
    def test_run(self):
        set_config(verbosity=Level.FATAL)
        obs_file = write_observations(self.tmpdir.joinpath("obs.tsv"), 20)
        out_calls = self.tmpdir.joinpath("calls.tsv")
        out_params = self.tmpdir.joinpath("params.tsv")
        files = run([obs_file],
                    out_calls=out_calls,
                    out_params=out_params,
                    lookup_table_size=0,
                    num_threads=1,
                    num_threads_apply=1)
        self.assertListEqual(files, [out_params, out_calls])
        calls = pd.read_csv(out_calls, sep="\t")
        self.assertEqual(len(calls), 40)
        self.assertEqual(calls["state"].tolist().count("crosslink"), 1)
        self.assertEqual(calls.loc[calls["pos"] == 21, "state"].item(),
                         "crosslink")
        params = read_params(out_params)
        self.assertGreater(params["bin2.p"], 0.8)

    @restore_config
    def test_reload_params(self):
        set_config(verbosity=Level.FATAL)
        obs_file = write_observations(self.tmpdir.joinpath("obs.tsv"), 20)
        in_params = self.tmpdir.joinpath("in.tsv")
        in_params.write_text("bin1.p\t0.001\nbin2.p\t0.5\n")
        out_params = self.tmpdir.joinpath("params.tsv")
        run([obs_file],
            out_calls=self.tmpdir.joinpath("calls.tsv"),
            out_params=out_params,
            in_params=in_params,
            max_iter_bw=0,
            num_threads=1,
            num_threads_apply=1)
        params = read_params(out_params)
        self.assertEqual(params["bin1.p"], 0.001)
        self.assertEqual(params["bin2.p"], 0.5)

    @restore_config
    def test_replicates(self):
        set_config(verbosity=Level.FATAL)
        obs_files = [write_observations(self.tmpdir.joinpath(f"obs{i}.tsv"),
                                        spike)
                     for i, spike in enumerate([10, 30])]
        out_calls = self.tmpdir.joinpath("calls.tsv")
        out_params = self.tmpdir.joinpath("params.tsv")
        run(obs_files,
            out_calls=out_calls,
            out_params=out_params,
            lookup_table_size=0,
            num_threads=2,
            num_threads_apply=2)
        params = read_params(out_params)
        self.assertEqual(params["rep0.bin2.p"], params["rep1.bin2.p"])
        calls = pd.read_csv(out_calls, sep="\t")
        self.assertListEqual(sorted(set(calls["rep"])), [0, 1])

    @restore_config
    def test_missing_params_file(self):
        set_config(verbosity=Level.FATAL - 1, exit_on_error=False)
        obs_file = write_observations(self.tmpdir.joinpath("obs.tsv"), 20)
        out_calls = self.tmpdir.joinpath("calls.tsv")
        files = run([obs_file],
                    out_calls=out_calls,
                    out_params=self.tmpdir.joinpath("params.tsv"),
                    in_params=self.tmpdir.joinpath("missing.tsv"),
                    num_threads=1,
                    num_threads_apply=1)
        # The run stops before computing anything.
        self.assertListEqual(files, [])
        self.assertFalse(out_calls.exists())

    @restore_config
    def test_no_observations(self):
        set_config(verbosity=Level.FATAL - 1, exit_on_error=False)
        self.assertListEqual(run([]), [])


if __name__ == "__main__":
    ut.main(verbosity=2)
