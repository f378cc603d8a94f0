import os, sys
sys.path.insert(1, os.path.join(os.path.dirname(__file__), '../'))

from tinygraph.model import Architecture, Linear, build_graph
from tinygraph.training import train_step, evaluate, train
from tinygraph.ops_type import NodeKind
import numpy as np
import unittest
from unittest import mock

# two well separated classes of 8-pixel "images"
def toy_dataset(n, seed=0):
  rng = np.random.default_rng(seed)
  labels = rng.integers(0, 2, size=n).astype(np.uint8)
  images = rng.integers(0, 60, size=(n, 8)).astype(np.uint8)
  images[labels == 0, :4] += 180
  images[labels == 1, 4:] += 180
  return images, labels

class test_model(unittest.TestCase):
  def test_default_architecture(self):
    arch = Architecture()
    self.assertEqual(arch.widths, (784, 40, 30, 10))
    self.assertEqual((arch.lr, arch.epochs, arch.steps), (0.1, 30, 10000))

  def test_architecture_from_env(self):
    env = {"HIDDEN": "16,8,4", "LR": "0.05", "EPOCHS": "3", "STEPS": "100", "SEED": "7"}
    with mock.patch.dict(os.environ, env):
      arch = Architecture.from_env()
    self.assertEqual(arch.hidden, (16, 8, 4))
    self.assertEqual((arch.lr, arch.epochs, arch.steps, arch.seed), (0.05, 3, 100, 7))

  def test_architecture_from_env_defaults(self):
    with mock.patch.dict(os.environ, {}, clear=True):
      arch = Architecture.from_env()
    self.assertEqual(arch.widths, (784, 40, 30, 10))
    self.assertIsNone(arch.seed)

  def test_build_mnist_graph(self):
    model = build_graph(Architecture(seed=0))
    g = model.graph
    self.assertEqual(g[model.x].shape, (784, 1))
    self.assertEqual(g[model.y].shape, (10, 1))
    self.assertEqual(g[model.y].kind, NodeKind.NL)
    shapes = sorted(g[h].shape for h in model.params)
    self.assertEqual(shapes, sorted([(40, 784), (40, 1), (30, 40), (30, 1), (10, 30), (10, 1)]))
    # input, 3 * (w, b, matmul, add, nl)
    self.assertEqual(len(g), 16)

  def test_linear(self):
    model = build_graph(Architecture(input_size=3, hidden=(), classes=2, seed=0))
    layer = model.layers[0]
    self.assertIsInstance(layer, Linear)
    g = model.graph
    g.load_input(model.x, np.array([255, 0, 255], dtype=np.uint8))
    g.forward(model.y)
    w, b = g[layer.w].value.data, g[layer.b].value.data
    expected = 1 / (1 + np.exp(-(w @ np.array([[1], [0], [1]]) + b)))
    np.testing.assert_allclose(g[model.y].value.data, expected, atol=1e-6, rtol=1e-5)

  def test_seeded_build(self):
    a, b = build_graph(Architecture(input_size=6, hidden=(4,), classes=3, seed=5)), build_graph(Architecture(input_size=6, hidden=(4,), classes=3, seed=5))
    for ha, hb in zip(a.params, b.params):
      np.testing.assert_array_equal(a.graph[ha].value.data, b.graph[hb].value.data)

  def test_train_step_reduces_loss(self):
    model = build_graph(Architecture(input_size=8, hidden=(6,), classes=2, seed=1))
    images, labels = toy_dataset(1)
    losses = [train_step(model, images[0], labels[0], 0.5) for _ in range(30)]
    self.assertLess(losses[-1], losses[0])

  def test_train_step_sets_target(self):
    model = build_graph(Architecture(input_size=8, hidden=(), classes=2, seed=1))
    images, _ = toy_dataset(1)
    train_step(model, images[0], 1, 0.1)
    np.testing.assert_array_equal(model.target.data, [[0], [1]])

  def test_evaluate(self):
    model = build_graph(Architecture(input_size=2, hidden=(), classes=2, seed=0))
    g = model.graph
    w = model.layers[0].w
    g[w].value[:] = [[10, -10], [-10, 10]]
    g[model.layers[0].b].value[:] = 0
    images = np.array([[255, 0], [0, 255], [255, 0], [200, 10]], dtype=np.uint8)
    self.assertEqual(evaluate(model, images, np.array([0, 1, 0, 0])), 4)
    self.assertEqual(evaluate(model, images, np.array([1, 1, 1, 1])), 1)

  def test_train_learns_toy_problem(self):
    arch = Architecture(input_size=8, hidden=(6,), classes=2, lr=0.5, epochs=3, steps=1000, seed=3)
    model = build_graph(arch)
    xtrain, ytrain = toy_dataset(200, seed=1)
    xtest, ytest = toy_dataset(50, seed=2)
    history = train(model, arch, xtrain, ytrain, xtest, ytest, np.random.default_rng(9))
    self.assertEqual(len(history), 3)
    self.assertGreaterEqual(evaluate(model, xtest, ytest), 45)

  def test_release(self):
    model = build_graph(Architecture(input_size=2, hidden=(), classes=2))
    model.release()
    self.assertTrue(model.graph.released)

if __name__ == "__main__":
  unittest.main()
