import unittest

import numpy as np

from seismic_simulator.materials.aging import (
    AgingFactors,
    CorrosionLevel,
    apply_aging,
    compute_aging_factors,
)


class TestAgingFactors(unittest.TestCase):
    def test_new_building_is_nominal(self):
        f = compute_aging_factors(0.0)
        self.assertEqual(f.strength_reduction, 1.0)
        self.assertEqual(f.stiffness_reduction, 1.0)
        self.assertEqual(f.damping_increase, 1.0)
        self.assertIs(f.corrosion_level, CorrosionLevel.NONE)

    def test_century_old_building(self):
        f = compute_aging_factors(100.0)
        self.assertAlmostEqual(f.strength_reduction, 0.5)
        self.assertAlmostEqual(f.stiffness_reduction, 0.55)
        self.assertAlmostEqual(f.damping_increase, 1.8)
        self.assertIs(f.corrosion_level, CorrosionLevel.SEVERE)

    def test_reductions_monotone_and_bounded(self):
        ages = np.linspace(0.0, 200.0, 401)
        factors = [compute_aging_factors(a) for a in ages]
        strength = np.array([f.strength_reduction for f in factors])
        stiffness = np.array([f.stiffness_reduction for f in factors])
        self.assertTrue(np.all(np.diff(strength) <= 0.0))
        self.assertTrue(np.all(np.diff(stiffness) <= 0.0))
        self.assertTrue(np.all(strength >= 0.4))
        self.assertTrue(np.all(stiffness >= 0.4))

    def test_corrosion_thresholds(self):
        cases = {
            14.9: CorrosionLevel.NONE,
            15.0: CorrosionLevel.MILD,
            39.9: CorrosionLevel.MILD,
            40.0: CorrosionLevel.MODERATE,
            69.9: CorrosionLevel.MODERATE,
            70.0: CorrosionLevel.SEVERE,
            150.0: CorrosionLevel.SEVERE,
        }
        for age, level in cases.items():
            self.assertIs(compute_aging_factors(age).corrosion_level, level, msg=f"age={age}")

    def test_idempotent(self):
        a = compute_aging_factors(37.5)
        b = compute_aging_factors(37.5)
        self.assertEqual(a, b)
        self.assertIsInstance(a, AgingFactors)

    def test_negative_age_rejected(self):
        with self.assertRaises(ValueError):
            compute_aging_factors(-1.0)

    def test_apply_aging_scales_each_property(self):
        f = compute_aging_factors(50.0)
        m, k, c = apply_aging([1000.0, 2000.0], [1.0e6, 2.0e6], [100.0, 0.0], f)
        np.testing.assert_allclose(m, [750.0, 1500.0])
        np.testing.assert_allclose(k, [0.775e6, 1.55e6])
        np.testing.assert_allclose(c, [140.0, 0.0])

    def test_to_dict_uses_plain_values(self):
        d = compute_aging_factors(20.0).to_dict()
        self.assertEqual(d["corrosion_level"], "mild")
        self.assertIn("description", d)


if __name__ == "__main__":
    unittest.main()
