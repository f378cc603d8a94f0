from __future__ import annotations
import time
import numpy as np
from typing import List, Optional, Tuple, Union
from tinygraph.buffers import MatrixBuffer, subtract, copy, argmax
from tinygraph.ops_type import NodeKind, LoadOPS, Activation
from tinygraph.helpers import DEBUG, ShapeMismatch, AllocationFailure, GraphReleased
from tinygraph.ops import OPS

class Node:
  __slots__ = "kind", "value", "grad", "left", "right", "ctx", "scratch"
  def __init__(self, kind:NodeKind, value:MatrixBuffer, left:Optional[int]=None, right:Optional[int]=None, ctx=None):
    self.kind, self.value, self.left, self.right, self.ctx = kind, value, left, right, ctx
    self.grad = MatrixBuffer.zeros(*value.shape)
    self.scratch:Tuple[MatrixBuffer, ...] = ()

  @property
  def shape(self) -> Tuple[int, int]: return self.value.shape

  def operands(self) -> Tuple[int, ...]:
    return tuple(h for h in (self.left, self.right) if h is not None)

  def __repr__(self):
    return f"<{type(self).__name__}: kind = <{self.kind.name}>: [shape = {self.shape}, operands = {self.operands()}]>"

# **** GRAPH ARENA ****
# nodes live in a list and refer to their operands by index. operands always precede their consumers,
# so the arena is acyclic and a handle stays valid until release()
class Graph:
  def __init__(self, rng:Optional[np.random.Generator]=None):
    self.rng = rng if rng is not None else np.random.default_rng()
    self._nodes:Optional[List[Node]] = []

  @property
  def nodes(self) -> List[Node]:
    if self._nodes is None: raise GraphReleased("graph has been released")
    return self._nodes

  def __getitem__(self, h:int) -> Node:
    if not 0 <= h < len(self.nodes): raise IndexError(f"no node with handle {h}")
    return self.nodes[h]

  def __len__(self): return len(self.nodes)

  def __repr__(self):
    n = "released" if self._nodes is None else len(self._nodes)
    return f"<{type(self).__name__}: nodes = {n}>"

  def _push(self, kind:NodeKind, value:MatrixBuffer, left:Optional[int]=None, right:Optional[int]=None, ctx=None) -> int:
    try:
      node = Node(kind, value, left, right, ctx)
      node.scratch = OPS[kind].scratch(self, node)
    except MemoryError as e:
      raise AllocationFailure(f"cannot allocate {kind.name} node of shape {value.shape}") from e
    self.nodes.append(node)
    return len(self.nodes) - 1

  def _alloc(self, rows:int, cols:int, loadop:LoadOPS=LoadOPS.ZEROS) -> MatrixBuffer:
    try:
      return MatrixBuffer.alloc(rows, cols, loadop, self.rng)
    except MemoryError as e:
      raise AllocationFailure(f"cannot allocate buffer of shape ({rows}, {cols})") from e

  # **** BUILDERS ****
  # shapes are validated here once, forward and backward never recheck them

  def input(self, rows:int, cols:int) -> int: return self._push(NodeKind.INPUT, self._alloc(rows, cols))

  def param(self, rows:int, cols:int, data:Optional[Union[np.ndarray, list]]=None) -> int:
    if data is None: return self._push(NodeKind.PARAM, self._alloc(rows, cols, LoadOPS.RAND))
    value = MatrixBuffer.read(data)
    if value.shape != (rows, cols): raise ShapeMismatch(f"param data of shape {value.shape} does not match ({rows}, {cols})")
    return self._push(NodeKind.PARAM, value)

  def matmul(self, left:int, right:int) -> int:
    l, r = self[left].shape, self[right].shape
    if l[1] != r[0]: raise ShapeMismatch(f"cannot multiply {l} by {r}")
    return self._push(NodeKind.MATMUL, self._alloc(l[0], r[1]), left, right)

  def add(self, left:int, right:int) -> int:
    l, r = self[left].shape, self[right].shape
    if l != r: raise ShapeMismatch(f"cannot add {l} and {r}")
    return self._push(NodeKind.ADD, self._alloc(*l), left, right)

  def nl(self, x:int, activation:Activation=Activation.SIGMOID) -> int:
    return self._push(NodeKind.NL, self._alloc(*self[x].shape), x, ctx=activation)

  # **** TRAVERSAL ****

  def toposort(self, root:int) -> List[int]:
    topo, vis = [], set()
    def _toposort(h):
      if h not in vis:
        vis.add(h)
        for child in self[h].operands():
          _toposort(child)
        topo.append(h)
    _toposort(root)
    return topo

  def _dispatch(self, h:int, fxn:str):
    node = self[h]
    if DEBUG: st = time.monotonic()
    getattr(OPS[node.kind], fxn)(self, node)
    if DEBUG:
      et = time.monotonic() - st
      in_s = [self[c].shape for c in node.operands()]
      print("{:8} node = {:4} op = {:8} in: {:<30} out: {:<12} in: {:.2f}us".format(fxn, h, node.kind.name, str(in_s), str(node.shape), et*1e6))

  def forward(self, root:int) -> MatrixBuffer:
    for h in self.toposort(root):
      self._dispatch(h, "forward")
    return self[root].value

  # root.grad must already hold dLoss/droot. every other gradient is rebuilt from zero and
  # reverse toposort only visits a node once all of its consumers have added into it
  def backward(self, root:int):
    topo = self.toposort(root)
    for h in topo[:-1]:
      self[h].grad.zero()
    for h in reversed(topo):
      self._dispatch(h, "backward")

  def parameters(self, root:int) -> List[int]:
    return [h for h in self.toposort(root) if self[h].kind == NodeKind.PARAM]

  # **** DRIVER BOUNDARY ****

  def load_input(self, h:int, sample:Union[bytes, np.ndarray]):
    node = self[h]
    assert node.kind == NodeKind.INPUT, f"cannot load a sample into a {node.kind.name} node"
    arr = np.frombuffer(sample, dtype=np.uint8) if isinstance(sample, (bytes, bytearray)) else np.asarray(sample)
    if arr.size != node.value.size: raise ShapeMismatch(f"sample of {arr.size} values does not fit {node.shape}")
    np.divide(arr.reshape(node.shape), 255.0, out=node.value.data)

  def interpret_result(self, root:int) -> int: return argmax(self[root].value)

  # dLoss/dy of 0.5*sum((y - target)^2), usually called with predicted = graph[root].value
  def set_output_gradient(self, root:int, predicted:MatrixBuffer, target:MatrixBuffer):
    subtract(self[root].grad, predicted, target)

  def set_gradient(self, h:int, grad:MatrixBuffer): copy(self[h].grad, grad)

  def release(self): self._nodes = None

  @property
  def released(self) -> bool: return self._nodes is None

def release_graph(graph:Graph): graph.release()
