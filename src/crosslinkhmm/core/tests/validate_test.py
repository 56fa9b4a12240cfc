import unittest as ut

import numpy as np

from crosslinkhmm.core.error import ObservationsError, OutOfBoundsError
from crosslinkhmm.core.validate import (require_issubclass,
                                        require_isinstance,
                                        require_isin,
                                        require_equal,
                                        require_atleast,
                                        require_atmost,
                                        require_between,
                                        require_fraction,
                                        require_1d_array,
                                        require_nonnegative)


class TestRequireIsSubclass(ut.TestCase):

    def test_is_subclass(self):
        self.assertIsNone(require_issubclass("xyz", FileExistsError, OSError))

    def test_not_issubclass(self):
        self.assertRaisesRegex(ValueError,
                               (f"xyz must be a subclass of {OSError}, "
                                f"but got {ZeroDivisionError}"),
                               require_issubclass,
                               "xyz", ZeroDivisionError, OSError)


class TestRequireIsInstance(ut.TestCase):

    def test_is_instance(self):
        self.assertIsNone(require_isinstance("xyz", 1, int))
        self.assertIsNone(require_isinstance("xyz", 1., (int, float)))

    def test_not_isinstance(self):
        self.assertRaisesRegex(TypeError,
                               "xyz must be an instance of",
                               require_isinstance,
                               "xyz", "1", int)

    def test_custom_not_typeerror(self):
        self.assertRaisesRegex(ValueError,
                               "error_type must be a subclass of",
                               require_isinstance,
                               "xyz", "1", int, ValueError)


class TestRequireIsIn(ut.TestCase):

    def test_isin(self):
        self.assertIsNone(require_isin("xyz", 2, [1, 2, 3]))

    def test_not_isin(self):
        self.assertRaisesRegex(ValueError,
                               r"xyz must be in \[1, 2, 3\], but got 4",
                               require_isin,
                               "xyz", 4, [1, 2, 3])


class TestRequireComparisons(ut.TestCase):

    def test_equal(self):
        self.assertIsNone(require_equal("xyz", 2, 2))
        self.assertRaisesRegex(ValueError,
                               "Must have xyz = abc, but got xyz=2 and abc=3",
                               require_equal,
                               "xyz", 2, 3, "abc")

    def test_atleast(self):
        self.assertIsNone(require_atleast("xyz", 2, 2))
        self.assertRaisesRegex(ValueError,
                               "Must have xyz ≥ 3, but got 2",
                               require_atleast,
                               "xyz", 2, 3)

    def test_atmost(self):
        self.assertIsNone(require_atmost("xyz", 2, 2))
        self.assertRaisesRegex(ValueError,
                               "Must have xyz ≤ 1, but got 2",
                               require_atmost,
                               "xyz", 2, 1)

    def test_classes(self):
        self.assertRaises(TypeError,
                          require_atleast,
                          "xyz", 2., 1, classes=int)

    def test_custom_error(self):
        self.assertRaises(OutOfBoundsError,
                          require_atleast,
                          "xyz", 0, 1, error_type=OutOfBoundsError)


class TestRequireBetween(ut.TestCase):

    def test_inclusive(self):
        self.assertIsNone(require_between("xyz", 0., 0., 1.))
        self.assertIsNone(require_between("xyz", 1., 0., 1.))
        self.assertRaises(ValueError, require_between, "xyz", 1.5, 0., 1.)

    def test_exclusive(self):
        self.assertIsNone(require_between("xyz", 0.5, 0., 1.,
                                          inclusive=False))
        self.assertRaises(ValueError, require_between, "xyz", 0., 0., 1.,
                          inclusive=False)
        self.assertRaises(ValueError, require_between, "xyz", 1., 0., 1.,
                          inclusive=False)

    def test_open_bounds(self):
        self.assertIsNone(require_between("xyz", 1.e9, 0., None))
        self.assertIsNone(require_between("xyz", -1.e9, None, 0.))

    def test_fraction(self):
        self.assertIsNone(require_fraction("xyz", 0.3))
        self.assertRaises(ValueError, require_fraction, "xyz", 0.,
                          inclusive=False)
        self.assertRaises(TypeError, require_fraction, "xyz", "0.3")


class TestRequireArrays(ut.TestCase):

    def test_1d_array(self):
        self.assertIsNone(require_1d_array("xyz", np.zeros(3)))
        self.assertIsNone(require_1d_array("xyz", np.zeros(3), 3))
        self.assertRaises(ObservationsError,
                          require_1d_array, "xyz", np.zeros((3, 1)))
        self.assertRaises(ObservationsError,
                          require_1d_array, "xyz", np.zeros(3), 4)

    def test_nonnegative(self):
        self.assertIsNone(require_nonnegative("xyz", np.array([0., 1.])))
        self.assertRaisesRegex(ObservationsError,
                               "1 negative value",
                               require_nonnegative,
                               "xyz", np.array([0., -1.]))
        self.assertRaisesRegex(ObservationsError,
                               "1 non-finite value",
                               require_nonnegative,
                               "xyz", np.array([0., np.nan]))


if __name__ == "__main__":
    ut.main(verbosity=2)
