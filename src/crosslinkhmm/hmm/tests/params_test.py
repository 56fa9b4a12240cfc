import unittest as ut
from pathlib import Path
from tempfile import TemporaryDirectory

import numpy as np

from crosslinkhmm.core.config import make_config
from crosslinkhmm.core.error import ParamsFileError
from crosslinkhmm.core.logs import Level, restore_config, set_config
from crosslinkhmm.emit.gamma import Gamma
from crosslinkhmm.emit.ztbin import ZTBIN, ZTBINReg
from crosslinkhmm.hmm.params import (ModelParams,
                                     load_params,
                                     read_params,
                                     write_params)
from crosslinkhmm.hmm.trans import TransitionMatrix


def make_params(bin1_p: float = 0.01, bin2_p: float = 0.15):
    return ModelParams(ZTBIN("bin1", bin1_p),
                       ZTBIN("bin2", bin2_p),
                       Gamma("gamma1", 0.5, 1., 0.1, 3.),
                       Gamma("gamma2", 2., 1., 1., 30.))


class TestModelParams(ut.TestCase):

    def test_get_params(self):
        params = make_params().get_params()
        self.assertEqual(params["bin1.p"], 0.01)
        self.assertEqual(params["bin2.p"], 0.15)
        self.assertEqual(params["gamma1.k"], 0.5)
        self.assertEqual(params["gamma2.theta"], 1.)
        self.assertEqual(params["trans.0.0"], 0.98)
        self.assertEqual(params["init.2"], 0.01)
        self.assertEqual(len(params), 4 + 4 + 9 + 3)

    def test_set_params(self):
        params = make_params()
        params.set_params({"bin2.p": 0.3,
                           "gamma2.k": 4.,
                           "trans.1.0": 0.1,
                           "trans.1.1": 0.8,
                           "trans.1.2": 0.1,
                           "unused": 1.})
        self.assertEqual(params.bin1.p, 0.01)
        self.assertEqual(params.bin2.p, 0.3)
        self.assertEqual(params.gamma2.k, 4.)
        self.assertEqual(params.trans.matrix[1, 2], 0.1)

    def test_order_check(self):
        params = make_params(0.3, 0.1)
        self.assertTrue(params.order_check(make_config()))
        self.assertEqual(params.bin1.p, 0.1)
        self.assertEqual(params.bin2.p, 0.3)
        self.assertFalse(params.order_check(make_config()))

    def test_converged(self):
        config = make_config()
        params = make_params()
        self.assertTrue(params.converged(params.copy(), config))
        self.assertFalse(params.converged(make_params(0.02), config))

    def test_copy(self):
        params = make_params()
        copy = params.copy()
        copy.bin1.p = 0.5
        copy.trans.matrix[0, 0] = 0.
        self.assertEqual(params.bin1.p, 0.01)
        self.assertEqual(params.trans.matrix[0, 0], 0.98)


class TestParamsFile(ut.TestCase):

    def setUp(self):
        self._tmpdir = TemporaryDirectory()
        self.tmpdir = Path(self._tmpdir.name)

    def tearDown(self):
        self._tmpdir.cleanup()

    def write_text(self, text: str):
        file = self.tmpdir.joinpath("params.tsv")
        file.write_text(text)
        return file

    def test_write_read(self):
        params = make_params()
        params.bin1.p = 0.1 / 3.
        params.trans = TransitionMatrix(np.array([[0.9, 0.07, 0.03],
                                                  [0.1, 0.8, 0.1],
                                                  [0.2, 0.3, 0.5]]),
                                        [0.8, 0.15, 0.05])
        file = write_params([params], self.tmpdir.joinpath("out.tsv"))
        self.assertEqual(file.read_text().splitlines()[0],
                         f"bin1.p\t{repr(0.1 / 3.)}")
        self.assertEqual(read_params(file), params.get_params())
        loaded = make_params()
        load_params([loaded], file)
        self.assertEqual(loaded.get_params(), params.get_params())

    def test_write_replicates(self):
        file = write_params([make_params(0.01), make_params(0.02)],
                            self.tmpdir.joinpath("out.tsv"))
        values = read_params(file)
        self.assertEqual(values["rep0.bin1.p"], 0.01)
        self.assertEqual(values["rep1.bin1.p"], 0.02)
        loaded = [make_params(0.05), make_params(0.05)]
        load_params(loaded, file)
        self.assertEqual(loaded[0].bin1.p, 0.01)
        self.assertEqual(loaded[1].bin1.p, 0.02)

    def test_missing_key(self):
        file = self.write_text("bin1.p\t0.02\n")
        params = make_params()
        load_params([params], file)
        self.assertEqual(params.bin1.p, 0.02)
        self.assertEqual(params.bin2.p, 0.15)

    def test_unprefixed_replicates(self):
        file = self.write_text("bin2.p\t0.4\n")
        params = [make_params(), make_params()]
        load_params(params, file)
        self.assertEqual(params[0].bin2.p, 0.4)
        self.assertEqual(params[1].bin2.p, 0.4)

    @restore_config
    def test_empty(self):
        set_config(verbosity=Level.FATAL)
        file = self.write_text("")
        self.assertEqual(read_params(file), dict())

    @restore_config
    def test_missing_file(self):
        set_config(verbosity=Level.FATAL - 1, exit_on_error=False)
        self.assertRaises(ParamsFileError,
                          read_params,
                          self.tmpdir.joinpath("missing.tsv"))

    @restore_config
    def test_no_value(self):
        set_config(verbosity=Level.FATAL - 1, exit_on_error=False)
        file = self.write_text("bin1.p\t0.02\nbin2.p\n")
        self.assertRaises(ParamsFileError, read_params, file)

    @restore_config
    def test_not_number(self):
        set_config(verbosity=Level.FATAL - 1, exit_on_error=False)
        file = self.write_text("bin1.p\tabc\n")
        self.assertRaises(ParamsFileError, read_params, file)

    def test_invalid_value(self):
        file = self.write_text("bin1.p\t1.5\n")
        self.assertRaises(ValueError, load_params, [make_params()], file)


if __name__ == "__main__":
    ut.main(verbosity=2)
