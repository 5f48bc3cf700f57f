from itertools import islice
from unittest import TestCase

import numpy as np

from VNKernel.errors import ConfigurationError
from VNKernel.generator import VelvetNoiseGenerator
from VNKernel.kernel import (
    SparseKernel,
    SparseKernelIterator,
    as_taps,
    render,
    to_fir,
    to_samples,
)
from VNKernel.placement import Pulse


class DenseSampleTestCase(TestCase):
    def test__to_samples(self):
        samples = list(to_samples([Pulse(2, 1), Pulse(5, -1)]))
        self.assertEqual(samples, [0.0, 0.0, 1.0, 0.0, 0.0, -1.0])
        self.assertEqual(list(to_samples([])), [])

    def test__to_samples_is_lazy(self):
        generator = VelvetNoiseGenerator(density=2000, sample_rate_hz=96000, seed=1)
        samples = np.fromiter(islice(to_samples(generator), 96000), dtype=np.float64)
        self.assertEqual(samples.max(), 1.0)
        self.assertEqual(samples.min(), -1.0)
        self.assertEqual(np.sum(np.abs(samples)), 2000)
        nonzero = [pulse.index for pulse in generator.until(96000)]
        self.assertTrue(np.array_equal(np.flatnonzero(samples), nonzero))

    def test__to_fir(self):
        generator = VelvetNoiseGenerator(density=1000, sample_rate_hz=44100, seed=2)
        fir = to_fir(generator, 1323)
        expected = np.fromiter(islice(to_samples(generator), 1323), dtype=np.float64)
        self.assertEqual(fir.shape, (1323,))
        self.assertTrue(np.array_equal(fir, expected))
        self.assertTrue(np.array_equal(to_fir([Pulse(1, -1)], 3), [0.0, -1.0, 0.0]))


class SparseKernelTestCase(TestCase):
    def test__kernel_iterator(self):
        generator = VelvetNoiseGenerator(density=10, sample_rate_hz=20, seed=3)
        for index, amplitude in islice(SparseKernelIterator(generator), 1, 11):
            self.assertGreater(index, 0)
            self.assertIsInstance(amplitude, float)
            self.assertIn(amplitude, (1.0, -1.0))

    def test__kernel_iterator_checks_taps(self):
        with self.assertRaises(ValueError):
            list(SparseKernelIterator([Pulse(3, 1), Pulse(3, -1)]))
        with self.assertRaises(ValueError):
            list(SparseKernelIterator([Pulse(-1, 1)]))
        with self.assertRaises(ValueError):
            list(SparseKernelIterator([(0, 2)]))

    def test__materialize(self):
        generator = VelvetNoiseGenerator(density=1000, sample_rate_hz=48000, seed=4)
        kernel = SparseKernelIterator(generator).materialize(num_taps=30)
        self.assertEqual(kernel.num_taps, 30)
        self.assertEqual(list(kernel), [(p.index, float(p.sign)) for p in generator.take(30)])
        kernel = SparseKernel.from_pulses(generator, length=1440)
        self.assertEqual(kernel.num_taps, 30)
        self.assertLess(kernel.length, 1441)
        kernel = SparseKernel.from_pulses(generator, num_taps=100, length=480)
        self.assertEqual(kernel.num_taps, 10)

    def test__properties(self):
        kernel = SparseKernel.from_taps([(0, 1.0), (10, -1.0), (25, 1.0)])
        self.assertEqual(kernel.num_taps, 3)
        self.assertEqual(kernel.length, 26)
        self.assertTrue(np.array_equal(kernel.negative_indexes, [10]))
        self.assertTrue(np.array_equal(kernel.positive_indexes, [0, 25]))
        fir = kernel.FIR
        self.assertEqual(fir.shape, (26,))
        self.assertEqual((fir[0], fir[10], fir[25]), (1.0, -1.0, 1.0))
        self.assertEqual(np.count_nonzero(fir), 3)
        self.assertEqual(repr(kernel), 'SparseKernel(num_taps=3, length=26)')

    def test__empty_kernel(self):
        kernel = SparseKernel(indexes=[], amplitudes=[])
        self.assertEqual(kernel.num_taps, 0)
        self.assertEqual(kernel.length, 0)
        self.assertEqual(kernel.FIR.shape, (0,))

    def test__equality(self):
        kernel1 = SparseKernel.from_pulses(VelvetNoiseGenerator(density=500, sample_rate_hz=44100, seed=5), num_taps=20)
        kernel2 = SparseKernel.from_pulses(VelvetNoiseGenerator(density=500, sample_rate_hz=44100, seed=5), num_taps=20)
        kernel3 = SparseKernel.from_pulses(VelvetNoiseGenerator(density=500, sample_rate_hz=44100, seed=6), num_taps=20)
        self.assertEqual(kernel1, kernel2)
        self.assertNotEqual(kernel1, kernel3)

    def test__immutable(self):
        indexes = np.array([1, 4, 9])
        kernel = SparseKernel(indexes=indexes, amplitudes=[1, -1, 1])
        indexes[0] = 0
        self.assertEqual(kernel.indexes[0], 1)
        with self.assertRaises(ValueError):
            kernel.indexes[0] = 2

    def test__invalid_kernel(self):
        with self.assertRaises(ConfigurationError):
            SparseKernel(indexes=[0, 5, 5], amplitudes=[1, 1, 1])
        with self.assertRaises(ConfigurationError):
            SparseKernel(indexes=[5, 0], amplitudes=[1, 1])
        with self.assertRaises(ConfigurationError):
            SparseKernel(indexes=[-1, 0], amplitudes=[1, 1])
        with self.assertRaises(ConfigurationError):
            SparseKernel(indexes=[0, 1], amplitudes=[1, 0.5])
        with self.assertRaises(ConfigurationError):
            SparseKernel(indexes=[0, 1], amplitudes=[1])

    def test__render(self):
        taps = [(0, 1.0), (10, -1.0), (25, 1.0), (40, -1.0)]
        self.assertEqual(render(taps, 5, 40, 0.5), [(10, -0.5), (25, 0.5)])
        self.assertEqual(render(taps, 0, 100), taps)
        self.assertEqual(render(taps, 50, 100), [])

    def test__render_infinite_pulses(self):
        generator = VelvetNoiseGenerator(density=100, sample_rate_hz=44100, seed=7)
        rendered = render(generator, 4410, 8820, 0.25)
        self.assertEqual(len(rendered), 10)
        for index, amplitude in rendered:
            self.assertTrue(4410 <= index < 8820)
            self.assertIn(amplitude, (0.25, -0.25))

    def test__as_taps(self):
        kernel = SparseKernel.from_taps([(2, -1.0), (3, 1.0)])
        indexes, amplitudes = as_taps(kernel)
        self.assertTrue(np.array_equal(indexes, [2, 3]))
        indexes, amplitudes = as_taps([(7, 0.5), (1, -2.0)])
        self.assertTrue(np.array_equal(indexes, [7, 1]))
        self.assertTrue(np.array_equal(amplitudes, [0.5, -2.0]))
        with self.assertRaises(ConfigurationError):
            as_taps([(-3, 1.0)])
