from __future__ import annotations
import numpy as np
from typing import Union, Tuple
from tinygraph.ops_type import LoadOPS, Activation

# keeps exp finite and sigmoid(-x) a normal float32
SIGMOID_CLAMP = 80.0

class LoadOP:
  @classmethod
  def alloc_zeros(self, shape:Tuple[int, int], rng=None) -> np.ndarray:
    return np.zeros(shape, dtype=np.float32)

  # uniform in [-0.5, 0.5)
  @classmethod
  def alloc_rand(self, shape:Tuple[int, int], rng=None) -> np.ndarray:
    rng = rng if rng is not None else np.random.default_rng()
    return (rng.random(shape, dtype=np.float32) - np.float32(0.5))


LoadOPSAllocator = {
  LoadOPS.ZEROS: LoadOP.alloc_zeros,
  LoadOPS.RAND: LoadOP.alloc_rand,
}

class MatrixBuffer:
  """
  Dense row-major float32 matrix. `data` always has shape (rows, cols) and is
  C-contiguous, so `flat` is the row-major buffer of length rows*cols.
  Kernels below write into a caller-provided destination and never reallocate it.
  """
  __slots__ = "rows", "cols", "data", "op"
  def __init__(self, rows:int, cols:int, data:np.ndarray, op:LoadOPS=LoadOPS.READ):
    assert data.shape == (rows, cols), f"buffer of shape {data.shape} does not match ({rows}, {cols})"
    self.rows, self.cols, self.op = rows, cols, op
    self.data = np.ascontiguousarray(data, dtype=np.float32)

  @property
  def shape(self) -> Tuple[int, int]: return (self.rows, self.cols)

  @property
  def size(self) -> int: return self.rows * self.cols

  @property
  def dtype(self): return np.float32

  @property
  def flat(self) -> np.ndarray: return self.data.reshape(-1)

  def __repr__(self):
    return f"<{type(self).__name__}: op = <{self.op}>: [shape = {self.shape}]>"

  def __getitem__(self, idx): return self.data[idx]
  def __setitem__(self, idx, val): self.data[idx] = val

  def zero(self) -> MatrixBuffer:
    self.data.fill(0.0)
    return self

  def detach(self) -> np.ndarray: return self.data

  def numpy(self) -> np.ndarray: return self.data.copy()

  @staticmethod
  def alloc(rows:int, cols:int, loadop:LoadOPS, rng=None) -> MatrixBuffer:
    return MatrixBuffer(rows, cols, LoadOPSAllocator[loadop]((rows, cols), rng), op=loadop)

  @staticmethod
  def zeros(rows:int, cols:int) -> MatrixBuffer: return MatrixBuffer.alloc(rows, cols, LoadOPS.ZEROS)

  @staticmethod
  def random(rows:int, cols:int, rng=None) -> MatrixBuffer: return MatrixBuffer.alloc(rows, cols, LoadOPS.RAND, rng)

  @staticmethod
  def read(data:Union[np.ndarray, list, float, int, np.number]) -> MatrixBuffer:
    if isinstance(data, (int, float, np.number)):
      return MatrixBuffer(1, 1, np.array([[data]], dtype=np.float32))
    elif isinstance(data, (np.ndarray, list)):
      arr = np.array(data, dtype=np.float32)
      # 1-D input reads as a column
      if arr.ndim == 1: arr = arr.reshape(-1, 1)
      assert arr.ndim == 2, f"cannot read {arr.ndim}-D data into a matrix"
      return MatrixBuffer(arr.shape[0], arr.shape[1], arr)
    else:
      raise NotImplementedError

# **** KERNELS ****
# shapes are fixed at graph construction, asserts here only guard development mistakes

def multiply(dst:MatrixBuffer, a:MatrixBuffer, b:MatrixBuffer) -> MatrixBuffer:
  assert a.cols == b.rows and dst.shape == (a.rows, b.cols), f"cannot multiply {a.shape} by {b.shape} into {dst.shape}"
  assert dst is not a and dst is not b
  np.matmul(a.data, b.data, out=dst.data)
  return dst

def add(dst:MatrixBuffer, a:MatrixBuffer, b:MatrixBuffer) -> MatrixBuffer:
  assert dst.shape == a.shape == b.shape, f"cannot add {a.shape} and {b.shape} into {dst.shape}"
  np.add(a.data, b.data, out=dst.data)
  return dst

def subtract(dst:MatrixBuffer, a:MatrixBuffer, b:MatrixBuffer) -> MatrixBuffer:
  assert dst.shape == a.shape == b.shape, f"cannot subtract {b.shape} from {a.shape} into {dst.shape}"
  np.subtract(a.data, b.data, out=dst.data)
  return dst

def transpose(dst:MatrixBuffer, src:MatrixBuffer) -> MatrixBuffer:
  assert dst.shape == (src.cols, src.rows) and dst is not src
  np.copyto(dst.data, src.data.T)
  return dst

def copy(dst:MatrixBuffer, src:MatrixBuffer) -> MatrixBuffer:
  assert dst.shape == src.shape
  np.copyto(dst.data, src.data)
  return dst

def nonlinearity(dst:MatrixBuffer, src:MatrixBuffer) -> MatrixBuffer:
  assert dst.shape == src.shape
  d = dst.data
  np.clip(src.data, -SIGMOID_CLAMP, SIGMOID_CLAMP, out=d)
  np.negative(d, out=d)
  np.exp(d, out=d)
  np.add(d, 1.0, out=d)
  np.reciprocal(d, out=d)
  return dst

# dx = dy * y * (1 - y), y is the sigmoid output not its input
def nonlinearity_gradient(dx:MatrixBuffer, y:MatrixBuffer, dy:MatrixBuffer) -> MatrixBuffer:
  assert dx.shape == y.shape == dy.shape and dx is not y and dx is not dy
  d = dx.data
  np.subtract(1.0, y.data, out=d)
  np.multiply(d, y.data, out=d)
  np.multiply(d, dy.data, out=d)
  return dx

# m -= rate * grad, with rate * grad staged in step
def apply_update(m:MatrixBuffer, grad:MatrixBuffer, rate:float, step:MatrixBuffer) -> MatrixBuffer:
  assert m.shape == grad.shape == step.shape and step is not m and step is not grad
  np.multiply(grad.data, rate, out=step.data)
  np.subtract(m.data, step.data, out=m.data)
  return m

def onehot_encode(buf:MatrixBuffer, index:int) -> MatrixBuffer:
  assert 0 <= index < buf.size, f"class {index} out of range for {buf.shape}"
  buf.zero()
  buf.flat[index] = 1.0
  return buf

# np.argmax returns the first occurrence, so ties go to the lowest index
def argmax(buf:MatrixBuffer) -> int: return int(np.argmax(buf.flat))

# each activation registers its forward rule next to a gradient rule written in terms of its output
ActivationKernels = {
  Activation.SIGMOID: (nonlinearity, nonlinearity_gradient),
}
assert set(ActivationKernels) == set(Activation), "every activation needs a forward and gradient kernel"
