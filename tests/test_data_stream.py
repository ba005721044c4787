import pytest

from lightlda.config import Config
from lightlda.data_block import DataBlock, DataBlockError
from lightlda.data_stream import (
    DiskDataStream,
    MemoryDataStream,
    create_data_stream,
)
from lightlda.dump_binary import write_block

CAPACITY = 1 << 20
MAX_DOCS = 100

BLOCKS = [
    [[1, 2], [3]],
    [[4], [5, 6, 7], [8]],
]


@pytest.fixture
def data_dir(tmp_path):
    for block_id, docs in enumerate(BLOCKS):
        write_block(tmp_path / f"block.{block_id}", docs)
    return tmp_path


def _first_word(block):
    return block.document(0).word(0)


def _reread(path):
    block = DataBlock(MAX_DOCS, CAPACITY)
    block.read(path)
    return block


def test_memory_stream_cycles_through_blocks(data_dir):
    stream = MemoryDataStream(2, data_dir, MAX_DOCS, CAPACITY)
    seen = []
    for _ in range(5):
        stream.before_access()
        seen.append(_first_word(stream.current_block()))
        stream.end_access()
    stream.close()
    assert seen == [1, 4, 1, 4, 1]


def test_memory_stream_writes_back_on_close(data_dir):
    with MemoryDataStream(2, data_dir, MAX_DOCS, CAPACITY) as stream:
        stream.before_access()
        stream.current_block().document(0).set_topic(1, 9)
        stream.end_access()
    block = _reread(data_dir / "block.0")
    assert block.document(0).topic(1) == 9
    assert block.document(0).word(1) == 2


def test_memory_stream_missing_block_raises(tmp_path):
    write_block(tmp_path / "block.0", BLOCKS[0])
    with pytest.raises(DataBlockError):
        MemoryDataStream(2, tmp_path, MAX_DOCS, CAPACITY)


def test_disk_stream_serves_blocks_in_order(data_dir):
    stream = DiskDataStream(2, data_dir, 1, MAX_DOCS, CAPACITY)
    seen = []
    for _ in range(4):
        stream.before_access()
        block = stream.current_block()
        seen.append((_first_word(block), len(block)))
        stream.end_access()
    with pytest.raises(RuntimeError):
        stream.before_access()
    stream.close()
    assert seen == [(1, 2), (4, 3), (1, 2), (4, 3)]


def test_disk_stream_persists_changes_between_passes(data_dir):
    stream = DiskDataStream(2, data_dir, 1, MAX_DOCS, CAPACITY)
    stream.before_access()
    stream.current_block().document(1).set_topic(0, 5)
    stream.end_access()

    stream.before_access()
    stream.end_access()

    stream.before_access()
    second_pass_topic = stream.current_block().document(1).topic(0)
    stream.end_access()
    stream.before_access()
    stream.end_access()
    stream.close()

    assert second_pass_topic == 5
    assert _reread(data_dir / "block.0").document(1).topic(0) == 5


def test_disk_stream_early_close_keeps_files(data_dir):
    stream = DiskDataStream(2, data_dir, 3, MAX_DOCS, CAPACITY)
    stream.before_access()
    stream.current_block().document(0).set_topic(0, 3)
    stream.close()
    assert _reread(data_dir / "block.0").document(0).topic(0) == 3
    assert len(_reread(data_dir / "block.1")) == 3


def test_disk_stream_requires_release_before_next(data_dir):
    stream = DiskDataStream(2, data_dir, 1, MAX_DOCS, CAPACITY)
    stream.before_access()
    with pytest.raises(RuntimeError):
        stream.before_access()
    stream.close()


def test_disk_stream_current_block_without_access_raises(data_dir):
    stream = DiskDataStream(2, data_dir, 1, MAX_DOCS, CAPACITY)
    with pytest.raises(RuntimeError):
        stream.current_block()
    stream.close()


def test_disk_stream_forwards_read_errors(tmp_path):
    write_block(tmp_path / "block.0", BLOCKS[0])
    stream = DiskDataStream(2, tmp_path, 1, MAX_DOCS, CAPACITY)
    stream.before_access()
    stream.end_access()
    with pytest.raises(DataBlockError):
        stream.before_access()
    stream.close()


@pytest.mark.parametrize(
    "out_of_core, num_blocks, expected",
    [
        (True, 2, DiskDataStream),
        (False, 2, MemoryDataStream),
        (True, 1, MemoryDataStream),
    ],
)
def test_create_data_stream_picks_kind(data_dir, out_of_core, num_blocks, expected):
    config = Config(
        input_dir=str(data_dir),
        num_blocks=num_blocks,
        out_of_core=out_of_core,
        num_iterations=1,
        max_num_document=MAX_DOCS,
        data_capacity=CAPACITY,
    )
    stream = create_data_stream(config)
    stream.before_access()
    first = _first_word(stream.current_block())
    stream.end_access()
    stream.close()
    assert isinstance(stream, expected)
    assert first == 1