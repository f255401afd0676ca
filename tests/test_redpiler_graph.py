import io

import pytest

from mchprs.redpiler_graph import (
    BlockPos,
    ComparatorMode,
    Link,
    LinkType,
    Node,
    NodeKind,
    NodeState,
    NodeType,
    deserialize,
    deserialize_from,
    serialize,
    serialize_into,
)


def _sample_graph():
    return [
        Node(
            ty=NodeType.repeater(2),
            block=(BlockPos(-3, 64, 17), 4100),
            state=NodeState(powered=True, repeater_locked=False, output_strength=15),
            facing_diode=True,
            inputs=[Link(ty=LinkType.SIDE, weight=1, to=2)],
            updates=[1, 2],
        ),
        Node(
            ty=NodeType.comparator(ComparatorMode.SUBTRACT),
            comparator_far_input=7,
            inputs=[Link(ty=LinkType.DEFAULT, weight=0, to=0)],
        ),
        Node(ty=NodeType(NodeKind.LAMP)),
    ]


def test_empty_graph_is_a_zero_length():
    assert serialize([]) == bytes(8)
    assert deserialize(bytes(8)) == []


def test_node_starts_with_variant_index():
    data = serialize([Node(ty=NodeType(NodeKind.LAMP))])
    assert data[:12] == b"\x01" + bytes(7) + b"\x03\x00\x00\x00"


def test_round_trip():
    graph = _sample_graph()
    assert deserialize(serialize(graph)) == graph


def test_stream_round_trip():
    graph = _sample_graph()
    stream = io.BytesIO()
    serialize_into(stream, graph)
    stream.seek(0)
    assert deserialize_from(stream) == graph


def test_truncated_data_raises():
    data = serialize(_sample_graph())
    with pytest.raises(ValueError):
        deserialize(data[:-1])


def test_invalid_bool_raises():
    data = bytearray(serialize([Node(ty=NodeType(NodeKind.TORCH))]))
    # length (8) + variant (4) + absent block tag (1) puts `powered` at 13
    data[13] = 2
    with pytest.raises(ValueError):
        deserialize(bytes(data))


def test_invalid_variant_raises():
    data = bytearray(serialize([Node(ty=NodeType(NodeKind.TORCH))]))
    data[8:12] = b"\x0a\x00\x00\x00"
    with pytest.raises(ValueError):
        deserialize(bytes(data))


def test_node_type_requires_matching_argument():
    with pytest.raises(ValueError):
        NodeType(NodeKind.REPEATER)
    with pytest.raises(ValueError):
        NodeType(NodeKind.TORCH, delay=1)
    with pytest.raises(ValueError):
        NodeType(NodeKind.COMPARATOR)


def test_out_of_range_value_raises():
    node = Node(ty=NodeType(NodeKind.WIRE), state=NodeState(output_strength=300))
    with pytest.raises(ValueError):
        serialize([node])