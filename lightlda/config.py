"""LightLDA settings and command-line parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Sequence

MB = 1024 * 1024

WORD_TOPIC_TABLE = 0
SUMMARY_ROW = 1
LOAD_FACTOR = 2
MAX_DOC_LENGTH = 8192

_TRAINING_USAGE = """\
LightLDA usage: 
-num_vocabs <arg>        Size of dataset vocabulary 
-num_topics <arg>        Number of topics. Default: 100
-num_iterations <arg>    Number of iteratioins. Default: 100
-mh_steps <arg>          Metropolis-hasting steps. Default: 2
-alpha <arg>             Dirichlet prior alpha. Default: 0.1
-beta <arg>              Dirichlet prior beta. Default: 0.01

-num_blocks <arg>        Number of blocks in disk. Default: 1
-max_num_document <arg>  Max number of document in a data block 
-input_dir <arg>         Directory of input data, containing
                         files generated by dump_block 

-num_servers <arg>       Number of servers. Default: 1
-num_local_workers <arg> Number of local training threads. Default: 4
-num_aggregator <arg>    Number of local aggregation threads. Default: 1
-server_file <arg>       Server endpoint file. Used by MPI-free version
-warm_start              Warm start 
-out_of_core             Use out of core computing 

-data_capacity <arg>     Memory pool size(MB) for data storage, 
                         should larger than the any data block
-model_capacity <arg>    Memory pool size(MB) for local model cache
-alias_capacity <arg>    Memory pool size(MB) for alias table 
-delta_capacity <arg>    Memory pool size(MB) for local delta cache
"""

_INFERENCE_USAGE = """\
LightLDA Inference usage: 
-num_vocabs <arg>        Size of dataset vocabulary 
-num_topics <arg>        Number of topics. Default: 100
-num_iterations <arg>    Number of iteratioins. Default: 100
-mh_steps <arg>          Metropolis-hasting steps. Default: 2
-alpha <arg>             Dirichlet prior alpha. Default: 0.1
-beta <arg>              Dirichlet prior beta. Default: 0.01

-num_blocks <arg>        Number of blocks in disk. Default: 1
-max_num_document <arg>  Max number of document in a data block 
-input_dir <arg>         Directory of input data, containing
                         files generated by dump_block 

-num_local_workers <arg> Number of local training threads. Default: 4
-warm_start              Warm start 
-out_of_core             Use out of core computing 

-data_capacity <arg>     Memory pool size(MB) for data storage, 
                         should larger than the any data block
"""


class UsageError(Exception):
    """Raised when the command line is invalid or help was requested."""

    def __init__(self, usage_text: str) -> None:
        super().__init__(usage_text)
        self.usage = usage_text


def usage(inference: bool = False) -> str:
    """Return the usage text for training or inference mode."""
    return _INFERENCE_USAGE if inference else _TRAINING_USAGE


@dataclass
class Config:
    """All LightLDA settings with their defaults."""

    num_vocabs: int = -1
    num_topics: int = 100
    num_iterations: int = 100
    mh_steps: int = 2
    num_servers: int = 1
    num_local_workers: int = 1
    num_aggregator: int = 1
    num_blocks: int = 1
    max_num_document: int = -1
    alpha: float = 0.01
    beta: float = 0.01
    server_file: str = ""
    input_dir: str = ""
    warm_start: bool = False
    inference: bool = False
    out_of_core: bool = False
    data_capacity: int = 1024 * MB
    model_capacity: int = 512 * MB
    delta_capacity: int = 256 * MB
    alias_capacity: int = 512 * MB

    def check(self) -> None:
        """Raise UsageError unless the required settings are present."""
        if self.input_dir == "" or self.num_vocabs <= 0 or self.max_num_document == -1:
            raise UsageError(usage(self.inference))


_INT_PREFIX = re.compile(r"\s*[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _atoi(text: str) -> int:
    match = _INT_PREFIX.match(text)
    return int(match.group()) if match else 0


def _atof(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    return float(match.group()) if match else 0.0


def _megabytes(text: str) -> int:
    return _atoi(text) * MB


_VALUE_OPTIONS: dict[str, tuple[str, Callable[[str], object]]] = {
    "-num_vocabs": ("num_vocabs", _atoi),
    "-num_topics": ("num_topics", _atoi),
    "-num_iterations": ("num_iterations", _atoi),
    "-mh_steps": ("mh_steps", _atoi),
    "-num_servers": ("num_servers", _atoi),
    "-num_local_workers": ("num_local_workers", _atoi),
    "-num_aggregator": ("num_aggregator", _atoi),
    "-num_blocks": ("num_blocks", _atoi),
    "-max_num_document": ("max_num_document", _atoi),
    "-alpha": ("alpha", _atof),
    "-beta": ("beta", _atof),
    "-input_dir": ("input_dir", str),
    "-server_file": ("server_file", str),
    "-data_capacity": ("data_capacity", _megabytes),
    "-model_capacity": ("model_capacity", _megabytes),
    "-alias_capacity": ("alias_capacity", _megabytes),
    "-delta_capacity": ("delta_capacity", _megabytes),
}

_FLAG_OPTIONS = {"-warm_start": "warm_start", "-out_of_core": "out_of_core"}


def parse_args(argv: Sequence[str], inference: bool = False) -> Config:
    """Build a checked Config from command-line arguments (program name excluded)."""
    config = Config(inference=inference)
    if not argv:
        raise UsageError(usage(inference))
    for position, arg in enumerate(argv):
        if arg in ("-help", "--help"):
            raise UsageError(usage(inference))
        if arg in _VALUE_OPTIONS:
            if position + 1 >= len(argv):
                raise UsageError(usage(inference))
            name, convert = _VALUE_OPTIONS[arg]
            setattr(config, name, convert(argv[position + 1]))
        elif arg in _FLAG_OPTIONS:
            setattr(config, _FLAG_OPTIONS[arg], True)
    config.check()
    return config