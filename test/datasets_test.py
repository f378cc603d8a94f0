import os, sys
sys.path.insert(1, os.path.join(os.path.dirname(__file__), '../'))

from tinygraph.datasets import load_idx_images, load_idx_labels, mnist, sample_index
import numpy as np
import tempfile
import unittest

def write_idx(path, magic, dims, payload):
  with open(path, "wb") as f:
    f.write(np.array([magic, *dims], dtype=">i4").tobytes())
    f.write(np.asarray(payload, dtype=np.uint8).tobytes())

class test_datasets(unittest.TestCase):
  def setUp(self):
    self.tmp = tempfile.TemporaryDirectory()
    self.addCleanup(self.tmp.cleanup)
    self.dir = self.tmp.name

  def test_images(self):
    pixels = np.arange(3 * 2 * 2, dtype=np.uint8)
    path = os.path.join(self.dir, "imgs")
    write_idx(path, 2051, (3, 2, 2), pixels)
    images = load_idx_images(path)
    self.assertEqual(images.shape, (3, 4))
    self.assertEqual(images.dtype, np.uint8)
    np.testing.assert_array_equal(images[1], [4, 5, 6, 7])

  def test_labels(self):
    path = os.path.join(self.dir, "labels")
    write_idx(path, 2049, (4,), [7, 0, 9, 3])
    np.testing.assert_array_equal(load_idx_labels(path), [7, 0, 9, 3])

  def test_bad_magic(self):
    path = os.path.join(self.dir, "labels")
    write_idx(path, 2051, (2,), [1, 2])
    with self.assertRaises(ValueError): load_idx_labels(path)

  def test_truncated(self):
    path = os.path.join(self.dir, "imgs")
    write_idx(path, 2051, (2, 2, 2), [1, 2, 3])
    with self.assertRaises(ValueError): load_idx_images(path)

  def test_mnist(self):
    write_idx(os.path.join(self.dir, "train-images-idx3-ubyte"), 2051, (5, 28, 28), np.zeros(5 * 784))
    write_idx(os.path.join(self.dir, "train-labels-idx1-ubyte"), 2049, (5,), np.arange(5))
    write_idx(os.path.join(self.dir, "t10k-images-idx3-ubyte"), 2051, (2, 28, 28), np.full(2 * 784, 255))
    write_idx(os.path.join(self.dir, "t10k-labels-idx1-ubyte"), 2049, (2,), [8, 9])
    xtrain, ytrain, xtest, ytest = mnist(self.dir)
    self.assertEqual(xtrain.shape, (5, 784))
    self.assertEqual(xtest.shape, (2, 784))
    np.testing.assert_array_equal(ytrain, np.arange(5))
    np.testing.assert_array_equal(ytest, [8, 9])
    self.assertTrue((xtest == 255).all())

  def test_sample_index(self):
    a = [sample_index(np.random.default_rng(1), 60000) for _ in range(3)]
    self.assertEqual(len(set(a)), 1)
    rng = np.random.default_rng(2)
    idx = [sample_index(rng, 10) for _ in range(500)]
    self.assertTrue(all(0 <= i < 10 for i in idx))
    self.assertEqual(set(idx), set(range(10)))

if __name__ == "__main__":
  unittest.main()
