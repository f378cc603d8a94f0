from __future__ import annotations
import numpy as np
from typing import List, Optional
from tqdm import trange, tqdm
from tinygraph.graph import Graph
from tinygraph.model import Model, Architecture
from tinygraph.buffers import MatrixBuffer, onehot_encode
from tinygraph.optim import update_weights
from tinygraph.datasets import sample_index

def squared_error(graph:Graph, root:int, target:MatrixBuffer) -> float:
  diff = graph[root].value.data.astype(np.float64) - target.data
  return float(0.5 * np.sum(diff * diff))

# load -> forward -> target -> dLoss/dy -> backward -> update, returns the loss before the update
def train_step(model:Model, sample, label:int, lr:float) -> float:
  g = model.graph
  g.load_input(model.x, sample)
  g.forward(model.y)
  onehot_encode(model.target, int(label))
  loss = squared_error(g, model.y, model.target)
  g.set_output_gradient(model.y, g[model.y].value, model.target)
  g.backward(model.y)
  update_weights(g, model.y, lr)
  return loss

def evaluate(model:Model, images:np.ndarray, labels:np.ndarray) -> int:
  correct = 0
  for sample, label in zip(images, labels):
    if model.forward(sample) == label: correct += 1
  return correct

def train(model:Model, arch:Architecture, xtrain:np.ndarray, ytrain:np.ndarray, xtest:np.ndarray, ytest:np.ndarray,
          rng:Optional[np.random.Generator]=None) -> List[int]:
  rng = rng if rng is not None else arch.rng()
  history = []
  for epoch in range(1, arch.epochs + 1):
    correct = evaluate(model, xtest, ytest)
    history.append(correct)
    tqdm.write(f"epoch {epoch}: {correct}/{len(ytest)} correct")
    for _ in (t := trange(arch.steps, leave=False)):
      idx = sample_index(rng, len(xtrain))
      loss = train_step(model, xtrain[idx], ytrain[idx], arch.lr)
      t.set_description("epoch %d loss %.6f" % (epoch, loss))
  return history
