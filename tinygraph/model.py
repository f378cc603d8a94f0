from __future__ import annotations
import numpy as np
from typing import List, Optional, Tuple
from tinygraph.graph import Graph
from tinygraph.buffers import MatrixBuffer
from tinygraph.ops_type import Activation
from tinygraph.helpers import getenv

class Architecture:
  """
  Fixed topology and training constants for the classifier.

  input_size -> hidden[0] -> ... -> hidden[-1] -> classes, every layer sigmoid(W @ x + b)
  on column vectors. lr, epochs and steps are read by the optimizer and the
  training loop, seed by whoever creates the random generator.
  """
  def __init__(self, input_size:int=784, hidden:Tuple[int, ...]=(40, 30), classes:int=10,
               lr:float=0.1, epochs:int=30, steps:int=10000, seed:Optional[int]=None):
    assert input_size > 0 and classes > 0 and all(h > 0 for h in hidden), "layer widths must be positive"
    self.input_size, self.hidden, self.classes = input_size, tuple(hidden), classes
    self.lr, self.epochs, self.steps, self.seed = lr, epochs, steps, seed

  @classmethod
  def from_env(cls) -> Architecture:
    hidden = getenv("HIDDEN", "40,30")
    seed = getenv("SEED", "")
    return cls(hidden=tuple(int(h) for h in hidden.split(",") if h),
               lr=getenv("LR", 0.1), epochs=getenv("EPOCHS", 30), steps=getenv("STEPS", 10000),
               seed=int(seed) if seed else None)

  @property
  def widths(self) -> Tuple[int, ...]: return (self.input_size, *self.hidden, self.classes)

  def rng(self) -> np.random.Generator: return np.random.default_rng(self.seed)

  def __repr__(self):
    return f"<{type(self).__name__}: widths = {self.widths}, lr = {self.lr}, epochs = {self.epochs}, steps = {self.steps}>"

class Linear:
  def __init__(self, graph:Graph, in_shape:int, out_shape:int, activation:Activation=Activation.SIGMOID):
    self.graph, self.activation = graph, activation
    self.w = graph.param(out_shape, in_shape)
    self.b = graph.param(out_shape, 1)

  def __call__(self, x:int) -> int:
    g = self.graph
    return g.nl(g.add(g.matmul(self.w, x), self.b), self.activation)

class Model:
  def __init__(self, graph:Graph, x:int, y:int, layers:List[Linear], classes:int):
    self.graph, self.x, self.y, self.layers = graph, x, y, layers
    # onehot target for the loss derivative, reused every step
    self.target = MatrixBuffer.zeros(classes, 1)

  @property
  def params(self) -> List[int]: return self.graph.parameters(self.y)

  def forward(self, sample) -> int:
    self.graph.load_input(self.x, sample)
    self.graph.forward(self.y)
    return self.graph.interpret_result(self.y)

  def release(self): self.graph.release()

def build_graph(arch:Architecture, rng:Optional[np.random.Generator]=None) -> Model:
  graph = Graph(rng if rng is not None else arch.rng())
  x = h = graph.input(arch.input_size, 1)
  widths = arch.widths
  layers = [Linear(graph, i, o) for i, o in zip(widths[:-1], widths[1:])]
  for layer in layers:
    h = layer(h)
  return Model(graph, x, h, layers, arch.classes)
