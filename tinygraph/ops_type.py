from __future__ import annotations
from enum import Enum, auto

class NodeKind(Enum): INPUT = auto(); PARAM = auto(); MATMUL = auto(); ADD = auto(); NL = auto();
class LoadOPS(Enum): ZEROS = auto(); RAND = auto(); READ = auto();
class Activation(Enum): SIGMOID = auto();

