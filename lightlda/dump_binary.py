"""Convert LibSVM-style corpora into LightLDA binary blocks and vocab files.

Block file layout (little endian)::

    int64 doc_num
    int64 offsets[doc_num + 1]        # offsets in int32 units, offsets[0] == 0
    int32 docs[offsets[doc_num]]      # per doc: cursor, w1, t1, w2, t2, ...

Vocab file layout::

    int32 size
    int32 word_ids[size]
    int32 global_tf[size]
    int32 local_tf[size]
"""

from __future__ import annotations

import re
import struct
import sys
import time
import warnings
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, Sequence

from .config import MAX_DOC_LENGTH

_USAGE = (
    "Usage: dump_binary <libsvm_input> <word_dict_file_input> "
    "<binary_output_dir> <output_file_offset>"
)
_CHUNK = 1 << 20
_C_SPACE = " \t\n\v\f\r"
_LONG = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


class DumpError(Exception):
    """Raised when the input cannot be converted."""


@dataclass(frozen=True)
class DumpResult:
    """Summary of one conversion."""

    num_documents: int
    num_words: int
    global_token_count: int
    num_tokens: int
    vocab_size: int
    block_path: Path
    vocab_path: Path
    txt_vocab_path: Path


def split_line(line: str, separator: str = "\t", trim_empty: bool = False) -> list[str]:
    """Split ``line`` on ``separator`` after dropping trailing spaces and CRs."""
    if not line:
        return []
    fields = line.rstrip(" \r").split(separator)
    if trim_empty:
        fields = [field for field in fields if field]
    return fields


def count_lines(path) -> int:
    """Count newline characters in the file at ``path``."""
    try:
        with open(path, "rb") as stream:
            return sum(chunk.count(b"\n") for chunk in iter(lambda: stream.read(_CHUNK), b""))
    except OSError as exc:
        raise DumpError(f"Fails to open file: {path}") from exc


def _read_text(path) -> str:
    try:
        return Path(path).read_bytes().decode("utf-8", errors="surrogateescape")
    except OSError as exc:
        raise DumpError(f"Fails to open file: {path}") from exc


def _lines(text: str) -> Iterator[str]:
    """Yield every newline-terminated line; a trailing unterminated piece is dropped."""
    *complete, rest = text.split("\n")
    yield from complete
    if rest:
        warnings.warn(
            "Invalid format: each line must end with \\n, "
            "but the file ends with a non-empty line without one",
            stacklevel=3,
        )


def _stoi(text: str, line: str) -> int:
    stripped = text.lstrip(_C_SPACE)
    match = re.match(r"[+-]?[0-9]+", stripped)
    if match is None:
        raise DumpError(f"Invalid number in line: {line}")
    value = int(match.group())
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise DumpError(f"Number out of range in line: {line}")
    return value


def load_global_tf(path) -> dict[int, int]:
    """Read ``word_id TAB word TAB tf`` lines into a word-id to tf mapping."""
    global_tf: dict[int, int] = {}
    for line in _lines(_read_text(path)):
        fields = split_line(line, "\t")
        if len(fields) != 3:
            raise DumpError(f"Invalid line: {line}")
        word_id = _stoi(fields[0], line)
        tf = _stoi(fields[2], line)
        if word_id in global_tf:
            raise DumpError(f"Duplicate words detected: {line}")
        global_tf[word_id] = tf
    return global_tf


def parse_document(text: str, max_length: int = MAX_DOC_LENGTH) -> list[int]:
    """Expand ``word:count`` pairs into a sorted list of word ids.

    Parsing stops at a newline or the end of ``text``; at most ``max_length``
    tokens are kept.
    """
    words: list[int] = []
    pos = 0
    end = len(text)
    while pos < end and text[pos] != "\n":
        if len(words) >= max_length:
            break
        match = _LONG.match(text, pos)
        word = 0
        if match:
            word = int(match.group(1))
            pos = match.end()
        if pos >= end or text[pos] != ":":
            raise DumpError(f"Invalid input{text}")
        pos += 1
        match = _LONG.match(text, pos)
        count = 0
        if match:
            count = int(match.group(1))
            pos = match.end()
        take = max(0, min(count, max_length - len(words)))
        words.extend([word] * take)
        while pos < end and text[pos] in " \r":
            pos += 1
    words.sort()
    return words


def write_block(path, documents: Sequence[Sequence[int]]) -> int:
    """Write documents of word ids as a block file; return the token count."""
    offsets = [0]
    body: list[int] = []
    for words in documents:
        body.append(0)  # cursor
        for word in words:
            body.extend((word, 0))
        offsets.append(len(body))
    try:
        with open(path, "wb") as stream:
            stream.write(struct.pack("<q", len(documents)))
            stream.write(struct.pack(f"<{len(offsets)}q", *offsets))
            stream.write(struct.pack(f"<{len(body)}i", *body))
    except OSError as exc:
        raise DumpError(f"Fails to create file: {path}") from exc
    return sum(len(words) for words in documents)


def write_vocab(
    path,
    txt_path,
    global_tf: Mapping[int, int],
    local_tf: Mapping[int, int],
    num_words: int,
) -> int:
    """Write the binary and text vocab files; return the local vocab size."""
    present = [word for word in range(num_words) if local_tf.get(word, 0) > 0]
    globals_ = [global_tf.get(word, 0) for word in present]
    locals_ = [local_tf[word] for word in present]
    size = len(present)
    try:
        with open(path, "wb") as stream:
            stream.write(struct.pack("<i", size))
            for values in (present, globals_, locals_):
                stream.write(struct.pack(f"<{size}i", *values))
    except OSError as exc:
        raise DumpError(f"Fails to create file: {path}") from exc
    try:
        with open(txt_path, "w", encoding="utf-8", newline="\n") as stream:
            stream.write(f"{size}\n")
            for word, g, l in zip(present, globals_, locals_):
                stream.write(f"{word}\t{g}\t{l}\n")
    except OSError as exc:
        raise DumpError(f"Fails to create file: {txt_path}") from exc
    return size


def convert(libsvm_path, dict_path, output_dir, offset: int) -> DumpResult:
    """Convert one LibSVM file into ``block.N``, ``vocab.N`` and ``vocab.N.txt``."""
    doc_num = count_lines(libsvm_path)
    global_tf = load_global_tf(dict_path)
    num_words = len(global_tf)

    out = Path(output_dir)
    block_path = out / f"block.{offset}"
    vocab_path = out / f"vocab.{offset}"
    txt_vocab_path = out / f"vocab.{offset}.txt"

    lines = _lines(_read_text(libsvm_path))
    local_tf: Counter = Counter()
    documents: list[list[int]] = []
    for _ in range(doc_num):
        line = next(lines, None)
        if not line:
            raise DumpError("Fails to get line")
        full_line = line + "\n"
        fields = split_line(full_line, "\t")
        if len(fields) != 2:
            raise DumpError(f"Invalid format, not key TAB val: {full_line}")
        try:
            words = parse_document(fields[1])
        except DumpError as exc:
            raise DumpError(f"Invalid input{full_line}") from exc
        local_tf.update(words)
        documents.append(words)

    num_tokens = write_block(block_path, documents)
    vocab_size = write_vocab(vocab_path, txt_vocab_path, global_tf, local_tf, num_words)
    return DumpResult(
        num_documents=doc_num,
        num_words=num_words,
        global_token_count=sum(global_tf.values()),
        num_tokens=num_tokens,
        vocab_size=vocab_size,
        block_path=block_path,
        vocab_path=vocab_path,
        txt_vocab_path=txt_vocab_path,
    )


def _atoi(text: str) -> int:
    match = _LONG.match(text)
    return int(match.group(1)) if match else 0


def main(argv: Sequence[str] | None = None) -> int:
    """Command-line entry point; returns the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 4:
        print(_USAGE)
        return 1
    libsvm_path, dict_path, output_dir, offset_text = args
    start = time.perf_counter()
    try:
        result = convert(libsvm_path, dict_path, output_dir, _atoi(offset_text))
    except DumpError as exc:
        print(exc)
        return 1
    print(f"There are totally {result.num_words} words in the vocabulary")
    print(f"There are maximally totally {result.global_token_count} tokens in the data set")
    print(f"The number of tokens in the output block is: {result.num_tokens}")
    print(f"Local vocab_size for the output block is: {result.vocab_size}")
    print(f"Elapsed seconds for dump blocks: {time.perf_counter() - start}")
    return 0