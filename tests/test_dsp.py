from unittest import TestCase

import numpy as np

from VNKernel.utils import dsp, timed


class DSPTestCase(TestCase):
    def test_as_float(self):
        x = np.array([1, 2, 3, 4], dtype=np.int32)
        self.assertEqual(dsp.as_float(x).dtype, np.float64)
        x = np.array([1, 2, 3, 4], dtype=np.float32)
        self.assertEqual(dsp.as_float(x).dtype, np.float32)
        self.assertIs(dsp.as_float(x), x)
        self.assertEqual(dsp.as_float([1.0, 2.0]).dtype, np.float64)

    def test_energy(self):
        self.assertEqual(dsp.energy(np.array([3.0, 4.0])), 25.0)
        self.assertEqual(dsp.energy(np.zeros(100)), 0.0)
        self.assertEqual(dsp.energy(np.array([])), 0.0)

    def test_check_mono(self):
        dsp.check_mono(np.zeros(10))
        dsp.check_mono(np.array([]))
        with self.assertRaises(ValueError):
            dsp.check_mono(np.zeros((10, 2)))

    def test_timed(self):
        calls = []

        @timed(repetitions=3)
        def add(x, y):
            calls.append((x, y))
            return x + y

        with self.assertLogs('VNKernel.utils', level='DEBUG'):
            self.assertEqual(add(1, 2), 3)
        self.assertEqual(len(calls), 3)
        self.assertEqual(add.__name__, 'add')
