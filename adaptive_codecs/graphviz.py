# adaptive_codecs/graphviz.py
# Graphviz dump of an adaptive Huffman tree, for debugging only.

from adaptive_codecs.adaptive_huffman import AdaptiveHuffmanTree, Role


# characters with a meaning inside a quoted record label
_RECORD_SPECIAL = set('\\"{}<>| ')


def _escape(text):
    return "".join("\\" + c if c in _RECORD_SPECIAL else c for c in text)


def _label(node):
    if node.role is Role.NYT:
        return f"{node.weight} | NYT"
    if node.role is Role.LEAF:
        symbol = node.symbol
        if isinstance(symbol, int) and 32 < symbol < 127:
            symbol = chr(symbol)
        return f"{node.weight} | {_escape(str(symbol))}"
    return f"{node.weight}"


def to_dot(tree: AdaptiveHuffmanTree) -> str:
    """Render the tree reachable from the root as a ``graph { ... }`` script.

    Nodes are named by their handle; the node number is shown as xlabel.
    """
    store = tree.store
    attributes, edges = [], []
    stack = [tree.root]
    while stack:
        handle = stack.pop()
        node = store[handle]
        shape = "record" if node.is_leaf() else "circle"
        attributes.append(
            f'{handle}[label="{_label(node)}",shape="{shape}",xlabel="{node.number}"]')
        for child in (node.left, node.right):
            if child is not None:
                edges.append(f"{handle} -- {child}")
        # push right first so the left subtree is listed first
        for child in (node.right, node.left):
            if child is not None:
                stack.append(child)
    return "graph {\n" + "\n".join(attributes + edges) + "\n}"


def write_dot(tree: AdaptiveHuffmanTree, path):
    with open(path, "w", encoding="utf-8") as f:
        f.write(to_dot(tree))
