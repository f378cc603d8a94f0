from __future__ import annotations
from typing import Tuple, TYPE_CHECKING
from tinygraph.buffers import MatrixBuffer, multiply, add, transpose, ActivationKernels
from tinygraph.ops_type import NodeKind

if TYPE_CHECKING:
  from tinygraph.graph import Graph, Node

# each op reads its operands through the graph arena and writes into buffers the node already owns.
# backward adds into operand gradients, so a node consumed twice receives both contributions
class OP:
  @classmethod
  def scratch(cls, g:Graph, n:Node) -> Tuple[MatrixBuffer, ...]: return ()

  @classmethod
  def forward(cls, g:Graph, n:Node): raise NotImplementedError(f"forward not implemented for {cls.__name__}")

  @classmethod
  def backward(cls, g:Graph, n:Node): raise NotImplementedError(f"backward not implemented for {cls.__name__}")

# leaf ops, value is written by the loader or the optimizer
class INPUT(OP):
  @classmethod
  def forward(cls, g:Graph, n:Node): pass

  @classmethod
  def backward(cls, g:Graph, n:Node): pass

class PARAM(OP):
  # staging buffer for the optimizer update
  @classmethod
  def scratch(cls, g:Graph, n:Node) -> Tuple[MatrixBuffer, ...]: return (MatrixBuffer.zeros(*n.value.shape),)

  @classmethod
  def forward(cls, g:Graph, n:Node): pass

  # grad is consumed by the optimizer
  @classmethod
  def backward(cls, g:Graph, n:Node): pass

# binary ops
class MATMUL(OP):
  @classmethod
  def scratch(cls, g:Graph, n:Node) -> Tuple[MatrixBuffer, ...]:
    l, r = g[n.left].value, g[n.right].value
    return (MatrixBuffer.zeros(l.cols, l.rows), MatrixBuffer.zeros(r.cols, r.rows),
            MatrixBuffer.zeros(*l.shape), MatrixBuffer.zeros(*r.shape))

  @classmethod
  def forward(cls, g:Graph, n:Node):
    multiply(n.value, g[n.left].value, g[n.right].value)

  # dL = grad @ R^T, dR = L^T @ grad
  @classmethod
  def backward(cls, g:Graph, n:Node):
    l, r = g[n.left], g[n.right]
    lt, rt, dl, dr = n.scratch
    multiply(dl, n.grad, transpose(rt, r.value))
    multiply(dr, transpose(lt, l.value), n.grad)
    add(l.grad, l.grad, dl)
    add(r.grad, r.grad, dr)

class ADD(OP):
  @classmethod
  def forward(cls, g:Graph, n:Node):
    add(n.value, g[n.left].value, g[n.right].value)

  @classmethod
  def backward(cls, g:Graph, n:Node):
    l, r = g[n.left], g[n.right]
    add(l.grad, l.grad, n.grad)
    add(r.grad, r.grad, n.grad)

# unary ops
class NL(OP):
  @classmethod
  def scratch(cls, g:Graph, n:Node) -> Tuple[MatrixBuffer, ...]:
    return (MatrixBuffer.zeros(*g[n.left].value.shape),)

  @classmethod
  def forward(cls, g:Graph, n:Node):
    fxn, _ = ActivationKernels[n.ctx]
    fxn(n.value, g[n.left].value)

  # the gradient rule takes the activation output, not its input
  @classmethod
  def backward(cls, g:Graph, n:Node):
    _, grad_fxn = ActivationKernels[n.ctx]
    x, (dx,) = g[n.left], n.scratch
    grad_fxn(dx, n.value, n.grad)
    add(x.grad, x.grad, dx)


OPS = {
  NodeKind.INPUT: INPUT,
  NodeKind.PARAM: PARAM,
  NodeKind.MATMUL: MATMUL,
  NodeKind.ADD: ADD,
  NodeKind.NL: NL,
}
assert set(OPS) == set(NodeKind), "every node kind needs an op"
