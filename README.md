# lightlda

Building blocks for the LightLDA topic model in pure Python. LightLDA
resamples the topic of each token with a Metropolis-Hastings chain. The
chain alternates a *word proposal* with a *doc proposal*. Word proposals are
drawn in constant time from alias tables.

The package provides:

- a converter from a LibSVM-style corpus to the binary block and vocabulary
  files (`lightlda.dump_binary`, command `lightlda-dump-binary`);
- reading and writing of data blocks, either all held in memory or streamed
  from disk through two buffers and a preload thread (`lightlda.data_block`,
  `lightlda.data_stream`);
- per-block vocabulary metadata, the splitting of each vocabulary into
  slices that fit the memory budgets, and alias-table indexes
  (`lightlda.meta`);
- word-topic and summary tables loaded from text model files
  (`lightlda.model`);
- alias tables, the document sampler and log-likelihood evaluation
  (`lightlda.alias_table`, `lightlda.sampler`, `lightlda.eval`);
- settings and option parsing (`lightlda.config`) and a seedable xorshift
  generator (`lightlda.rng`).

There are no third-party runtime dependencies.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Preparing a corpus

**Corpus file.** Each line holds one document: a key, a TAB, and then
space-separated `word_id:count` pairs. Every line must end with a newline.
A final piece of text without a newline is dropped with a warning.

```
doc0	0:2 3:1
doc1	1:1 2:4
```

**Word dictionary file.** Each line has three TAB-separated fields:
`word_id`, the word, and its term frequency in the whole data set. A word id
may appear only once.

```
0	apple	10
1	banana	4
2	cherry	7
3	date	2
```

Convert the two files with:

```
lightlda-dump-binary <libsvm_input> <word_dict_file_input> <binary_output_dir> <output_file_offset>
```

For example, `lightlda-dump-binary corpus.libsvm dict.txt data 0` writes
three files:

- `data/block.0` is the document block, in little endian. It starts with the
  document count (int64) and `count + 1` offsets (int64, in int32 units).
  These are followed by the documents as int32 values: a cursor, then
  `word, topic` pairs sorted by word id, with every topic set to 0.
- `data/vocab.0` lists the words that occur in the block. It holds their
  number (int32), followed by the word ids, their global term frequencies
  and their local term frequencies, each as an int32 array.
- `data/vocab.0.txt` is the same vocabulary as text. The first line is the
  count, and each following line is `word_id	global_tf	local_tf`.

A document keeps at most its first 8192 tokens. The command prints a short
summary: vocabulary size, token counts and elapsed time. On malformed input
or an unreadable file it prints the error and exits with status 1, and it
does the same when it gets the wrong number of arguments.

The same conversion is available from Python. `convert(libsvm_path,
dict_path, output_dir, offset)` returns a `DumpResult` and raises
`DumpError` on failure. The helpers `load_global_tf`, `parse_document`,
`write_block` and `write_vocab` can also be used on their own.

Give each block its own offset (`block.0`, `block.1`, ...) when a corpus is
split across several blocks.

## Configuration

`lightlda.config.parse_args(argv, inference)` builds a `Config` from option
lists such as `-num_vocabs`, `-num_topics`, `-num_iterations`, `-mh_steps`,
`-alpha`, `-beta`, `-num_blocks`, `-max_num_document`, `-input_dir`,
`-num_local_workers`, `-warm_start` and `-out_of_core`. The memory budgets
`-data_capacity`, `-model_capacity`, `-alias_capacity` and
`-delta_capacity` are given in MB and stored in bytes. `-input_dir`,
`-num_vocabs` and `-max_num_document` are required. If one of them is
missing, if the argument list is empty, or if `-help` is given,
`UsageError` is raised; its `usage` attribute holds the text that
`usage(inference)` returns.

## Reading data

```python
from lightlda.config import parse_args
from lightlda.data_stream import create_data_stream
from lightlda.meta import Meta

config = parse_args(
    ["-num_vocabs", "4", "-num_topics", "10",
     "-max_num_document", "100", "-input_dir", "data"],
    False,
)

meta = Meta(config)
meta.load()            # reads data/vocab.<block>, schedules slices, builds alias indexes

with create_data_stream(config) as stream:   # close() writes blocks back to disk
    stream.before_access()
    block = stream.current_block()
    doc = block.document(0)
    print([doc.word(i) for i in range(len(doc))])
    stream.end_access()
```

`create_data_stream` returns a `DiskDataStream` when `out_of_core` is set
and there is more than one block. Otherwise it returns a
`MemoryDataStream`. A `DataBlock` raises `DataBlockError` when a file is
missing or truncated, or when it holds more documents or tokens than its
limits allow.

## Sampling against a stored model

`LocalModel.load()` reads the files `server_<n>_table_0.model` (the
word-topic table) and `server_<n>_table_1.model` (the summary row) from the
input directory. Each line is a word id followed by `topic:count` pairs.
Rows of words with no global term frequency are skipped.

```python
from lightlda.alias_table import AliasTable
from lightlda.model import LocalModel
from lightlda.rng import XorshiftRng
from lightlda.sampler import LightDocSampler

model = LocalModel(meta, config)
model.load()

alias = AliasTable(config.num_vocabs, config.num_topics, config.beta)
alias.set_index(meta.alias_index(0, 0))
for word in meta.local_vocab(0).words(0):
    alias.build(word, model)
alias.build(-1, model)             # the shared beta row

rng = XorshiftRng(12345)
sampler = LightDocSampler(config, rng)
last_word = meta.local_vocab(0).last_word(0)
sampled = sampler.sample_one_doc(doc, 0, last_word, model, alias)
```

Building the row of a sparse word that has no non-zero counts raises
`AliasTableError`. `sample_one_doc` uses the exact chain (`sample`), and
`approx_sample` is the cheaper approximate variant. In inference mode the
model is left unchanged. In training mode each change of topic is also
applied to the model's counts.

`XorshiftRng` is seeded explicitly, or from the clock when no seed is
given. `rand()` returns a 31-bit integer, `rand_double()` a float in
`[0, 1)` and `rand_k(k)` an integer in `[0, k)`.

## Likelihood

`lightlda.eval` provides `doc_log_likelihood`, `word_log_likelihood` and
`normalize_word_log_likelihood`, all built on a Lanczos `log_gamma`. The
sum of the three terms is the model's log-likelihood.

## What this package does not do

The package does not include a training driver or command. There is no
distributed parameter server, no multi-worker trainer, no per-iteration
training loop and no dumping of document-topic results. `LocalModel` is the
only model: it keeps its tables in memory and never writes them back to
model files. To train, call the pieces above from your own loop.