import os
import networkx as nx

# DEBUG=1 prints one line per node dispatched by forward/backward
DEBUG = int(os.getenv("DEBUG", 0))

class ShapeMismatch(ValueError): pass
class AllocationFailure(MemoryError): pass
class GraphReleased(RuntimeError): pass

def getenv(key:str, default=0): return type(default)(os.getenv(key, default))

def to_networkx(graph, root:int) -> nx.DiGraph:
    G = nx.DiGraph()
    for h in graph.toposort(root):
        node = graph[h]
        G.add_node(h, label=f"{h} {node.kind.name}\n{node.value.shape}", kind=node.kind)
        for child in node.operands():
            G.add_edge(child, h)
    return G

def draw_graph(graph, root:int, graph_path:str='/tmp/node_graph'):
    G = to_networkx(graph, root)
    dot_path = f'{graph_path}.dot'
    nx.drawing.nx_pydot.write_dot(G, dot_path)
    svg_path = f"{graph_path}.svg"
    cmd = f'dot -Tsvg -Grankdir=BT "{dot_path}" -o "{svg_path}"'
    return_code = os.system(cmd)
    if return_code != 0:
        print(f"An error occurred while generating the graph. Return code: {return_code}")
    else:
        print(f"Graph saved to {svg_path}")
    return svg_path
