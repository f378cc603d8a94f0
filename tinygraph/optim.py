from __future__ import annotations
from typing import List
from tinygraph.graph import Graph
from tinygraph.buffers import apply_update

LEARNING_RATE = 0.1

class Optimizer():
  def __init__(self, graph:Graph, root:int, lr=LEARNING_RATE):
    self.graph, self.lr = graph, lr
    self.params:List[int] = graph.parameters(root)

  def zero_grad(self):
    for param in self.params:
      self.graph[param].grad.zero()

# plain gradient descent, no momentum. each PARAM node owns the staging buffer for its update
class SGD(Optimizer):
  def step(self):
    for param in self.params:
      node = self.graph[param]
      apply_update(node.value, node.grad, self.lr, node.scratch[0])

def update_weights(graph:Graph, root:int, lr=LEARNING_RATE): SGD(graph, root, lr).step()
