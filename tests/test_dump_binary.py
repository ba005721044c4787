import struct

import pytest

from lightlda.dump_binary import (
    DumpError,
    convert,
    count_lines,
    load_global_tf,
    main,
    parse_document,
    split_line,
    write_block,
    write_vocab,
)


def _read_block(path):
    data = path.read_bytes()
    (doc_num,) = struct.unpack_from("<q", data, 0)
    offsets = list(struct.unpack_from(f"<{doc_num + 1}q", data, 8))
    body_start = 8 * (doc_num + 2)
    body = list(struct.unpack_from(f"<{offsets[-1]}i", data, body_start))
    assert len(data) == body_start + 4 * offsets[-1]
    return doc_num, offsets, body


def _read_vocab(path):
    data = path.read_bytes()
    (size,) = struct.unpack_from("<i", data, 0)
    values = struct.unpack_from(f"<{3 * size}i", data, 4)
    assert len(data) == 4 + 12 * size
    return list(values[:size]), list(values[size : 2 * size]), list(values[2 * size :])


@pytest.fixture
def corpus(tmp_path):
    libsvm = tmp_path / "corpus.libsvm"
    libsvm.write_text("d0\t2:1 0:2\nd1\t1:3\r\nd2\t0:1\n", encoding="utf-8")
    vocab = tmp_path / "dict.txt"
    vocab.write_text("0\talpha\t7\n1\tbeta\t4\n2\tgamma\t9\n3\tdelta\t1\n", encoding="utf-8")
    return libsvm, vocab


def test_split_line_strips_trailing_space_and_cr():
    assert split_line("a\tb \r\r ", "\t") == ["a", "b"]


def test_split_line_keeps_and_trims_empty_fields():
    assert split_line("a\t\tb", "\t") == ["a", "", "b"]
    assert split_line("a\t\tb", "\t", trim_empty=True) == ["a", "b"]


def test_split_line_empty_input():
    assert split_line("", "\t") == []


def test_count_lines(tmp_path):
    path = tmp_path / "f"
    path.write_bytes(b"a\nb\n\nc")
    assert count_lines(path) == 3


def test_count_lines_missing_file(tmp_path):
    with pytest.raises(DumpError):
        count_lines(tmp_path / "missing")


def test_load_global_tf(tmp_path):
    path = tmp_path / "dict"
    path.write_text("0\tx\t5\n4\ty\t12\n", encoding="utf-8")
    assert load_global_tf(path) == {0: 5, 4: 12}


def test_load_global_tf_rejects_duplicates(tmp_path):
    path = tmp_path / "dict"
    path.write_text("1\tx\t5\n1\ty\t6\n", encoding="utf-8")
    with pytest.raises(DumpError, match="Duplicate"):
        load_global_tf(path)


def test_load_global_tf_rejects_wrong_field_count(tmp_path):
    path = tmp_path / "dict"
    path.write_text("1\t5\n", encoding="utf-8")
    with pytest.raises(DumpError, match="Invalid line"):
        load_global_tf(path)


def test_load_global_tf_drops_unterminated_last_line(tmp_path):
    path = tmp_path / "dict"
    path.write_text("1\tx\t5\n2\ty\t6", encoding="utf-8")
    with pytest.warns(UserWarning):
        result = load_global_tf(path)
    assert result == {1: 5}


def test_parse_document_expands_and_sorts():
    assert parse_document("3:1 1:2\n", 10) == [1, 1, 3]


def test_parse_document_truncates_at_max_length():
    words = parse_document("5:4 2:4\n", 6)
    assert words == [2, 2, 5, 5, 5, 5]


def test_parse_document_empty():
    assert parse_document("\n", 10) == []


def test_parse_document_skips_carriage_return():
    assert parse_document("7:2\r\n", 10) == [7, 7]


def test_parse_document_rejects_missing_colon():
    with pytest.raises(DumpError):
        parse_document("7 2\n", 10)


def test_write_block_layout(tmp_path):
    path = tmp_path / "block"
    documents = [[1, 4], [], [2]]
    assert write_block(path, documents) == 3
    doc_num, offsets, body = _read_block(path)
    assert doc_num == len(documents)
    assert offsets[0] == 0
    for index, words in enumerate(documents):
        segment = body[offsets[index] : offsets[index + 1]]
        assert segment[0] == 0
        assert segment[1::2] == words
        assert all(topic == 0 for topic in segment[2::2])


def test_write_vocab(tmp_path):
    binary = tmp_path / "vocab"
    text = tmp_path / "vocab.txt"
    size = write_vocab(binary, text, {0: 10, 1: 20, 2: 30}, {0: 3, 2: 1, 5: 9}, 3)
    assert size == 2
    assert _read_vocab(binary) == ([0, 2], [10, 30], [3, 1])
    assert text.read_text() == "2\n0\t10\t3\n2\t30\t1\n"


def test_convert_round_trip(corpus, tmp_path):
    libsvm, vocab = corpus
    result = convert(libsvm, vocab, tmp_path, 7)
    assert result.block_path == tmp_path / "block.7"
    assert result.num_documents == 3
    assert result.num_words == 4
    assert result.global_token_count == 7 + 4 + 9 + 1
    assert result.num_tokens == 7

    doc_num, offsets, body = _read_block(result.block_path)
    assert doc_num == 3
    docs = [body[offsets[i] : offsets[i + 1]][1::2] for i in range(doc_num)]
    assert docs == [[0, 0, 2], [1, 1, 1], [0]]

    ids, global_tf, local_tf = _read_vocab(result.vocab_path)
    assert ids == [0, 1, 2]
    assert global_tf == [7, 4, 9]
    assert local_tf == [3, 3, 1]
    assert result.vocab_size == len(ids)
    assert result.txt_vocab_path.read_text().splitlines()[0] == "3"


def test_convert_rejects_line_without_tab(tmp_path, corpus):
    _, vocab = corpus
    libsvm = tmp_path / "bad.libsvm"
    libsvm.write_text("d0 1:2\n", encoding="utf-8")
    with pytest.raises(DumpError, match="not key TAB val"):
        convert(libsvm, vocab, tmp_path, 0)


def test_convert_rejects_empty_line(tmp_path, corpus):
    _, vocab = corpus
    libsvm = tmp_path / "bad.libsvm"
    libsvm.write_text("d0\t1:2\n\n", encoding="utf-8")
    with pytest.raises(DumpError, match="Fails to get line"):
        convert(libsvm, vocab, tmp_path, 0)


def test_main_wrong_argument_count(capsys):
    assert main(["only", "two"]) == 1
    assert "Usage: dump_binary" in capsys.readouterr().out


def test_main_converts(corpus, tmp_path, capsys):
    libsvm, vocab = corpus
    assert main([str(libsvm), str(vocab), str(tmp_path), "2"]) == 0
    assert (tmp_path / "block.2").exists()
    assert (tmp_path / "vocab.2").exists()
    assert "Local vocab_size for the output block is: 3" in capsys.readouterr().out


def test_main_reports_missing_input(tmp_path, capsys):
    assert main([str(tmp_path / "nope"), str(tmp_path / "nope"), str(tmp_path), "0"]) == 1
    assert "Fails to open file" in capsys.readouterr().out