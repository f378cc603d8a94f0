from __future__ import annotations
import os
import numpy as np
from typing import Tuple

IMAGES_MAGIC, LABELS_MAGIC = 2051, 2049

# idx files: big-endian int32 magic, big-endian int32 dims, then raw uint8 payload
def _read_idx(path:str, magic:int, ndims:int) -> Tuple[Tuple[int, ...], np.ndarray]:
  with open(path, "rb") as f:
    raw = f.read()
  header = np.frombuffer(raw, dtype=">i4", count=1 + ndims)
  if header[0] != magic: raise ValueError(f"{path}: bad idx magic {header[0]}, expected {magic}")
  dims = tuple(int(d) for d in header[1:])
  data = np.frombuffer(raw, dtype=np.uint8, offset=4 * (1 + ndims))
  if data.size != np.prod(dims): raise ValueError(f"{path}: expected {np.prod(dims)} bytes of data, got {data.size}")
  return dims, data

# (count, rows*cols) uint8, one flattened sample per row
def load_idx_images(path:str) -> np.ndarray:
  (n, rows, cols), data = _read_idx(path, IMAGES_MAGIC, 3)
  return data.reshape(n, rows * cols)

def load_idx_labels(path:str) -> np.ndarray:
  _, data = _read_idx(path, LABELS_MAGIC, 1)
  return data

def mnist(path:str) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
  xtrain = load_idx_images(os.path.join(path, "train-images-idx3-ubyte"))
  ytrain = load_idx_labels(os.path.join(path, "train-labels-idx1-ubyte"))
  xtest = load_idx_images(os.path.join(path, "t10k-images-idx3-ubyte"))
  ytest = load_idx_labels(os.path.join(path, "t10k-labels-idx1-ubyte"))
  return xtrain, ytrain, xtest, ytest

def sample_index(rng:np.random.Generator, n:int) -> int: return int(rng.integers(0, n))
