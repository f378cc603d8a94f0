import os, sys
sys.path.insert(1, os.path.join(os.path.dirname(__file__), '../'))

from tinygraph.model import Architecture, build_graph
from tinygraph.datasets import mnist
from tinygraph.training import train

# MNIST_DIR=./MNIST EPOCHS=30 STEPS=10000 LR=0.1 SEED=0 python extra/train_mnist.py
if __name__ == "__main__":
  arch = Architecture.from_env()
  xtrain, ytrain, xtest, ytest = mnist(os.getenv("MNIST_DIR", "./"))
  rng = arch.rng()
  model = build_graph(arch, rng)
  print(arch)
  train(model, arch, xtrain, ytrain, xtest, ytest, rng)
  model.release()
