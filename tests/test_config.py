import pytest

from lightlda.config import MB, Config, UsageError, parse_args, usage

REQUIRED = ["-input_dir", "data", "-num_vocabs", "50", "-max_num_document", "10"]


def test_defaults():
    config = Config()
    assert config.num_topics == 100
    assert config.num_iterations == 100
    assert config.mh_steps == 2
    assert config.data_capacity == 1024 * MB
    assert config.alias_capacity == 512 * MB
    assert config.warm_start is False


def test_required_values_parsed():
    config = parse_args(REQUIRED)
    assert config.input_dir == "data"
    assert config.num_vocabs == 50
    assert config.max_num_document == 10


def test_numeric_and_float_options():
    config = parse_args(REQUIRED + ["-num_topics", "8", "-alpha", "0.5", "-beta", "0.25"])
    assert config.num_topics == 8
    assert config.alpha == pytest.approx(0.5)
    assert config.beta == pytest.approx(0.25)


def test_flags():
    config = parse_args(REQUIRED + ["-warm_start", "-out_of_core"])
    assert config.warm_start is True
    assert config.out_of_core is True


def test_capacities_in_megabytes():
    config = parse_args(REQUIRED + ["-data_capacity", "3", "-delta_capacity", "2"])
    assert config.data_capacity == 3 * MB
    assert config.delta_capacity == 2 * MB


def test_numeric_prefix_parsing():
    config = parse_args(REQUIRED + ["-num_topics", "12abc"])
    assert config.num_topics == 12


def test_empty_argv_raises():
    with pytest.raises(UsageError):
        parse_args([])


@pytest.mark.parametrize("flag", ["-help", "--help"])
def test_help_raises_with_usage(flag):
    with pytest.raises(UsageError) as info:
        parse_args(REQUIRED + [flag])
    assert info.value.usage == usage(False)


def test_missing_input_dir_raises():
    with pytest.raises(UsageError):
        parse_args(["-num_vocabs", "5", "-max_num_document", "3"])


def test_non_positive_vocab_raises():
    with pytest.raises(UsageError):
        parse_args(["-input_dir", "d", "-num_vocabs", "0", "-max_num_document", "3"])


def test_missing_option_value_raises():
    with pytest.raises(UsageError):
        parse_args(REQUIRED + ["-num_topics"])


def test_inference_usage_differs():
    assert "-num_servers" in usage(False)
    assert "-num_servers" not in usage(True)
    assert usage(True).startswith("LightLDA Inference usage")


def test_check_uses_inference_usage():
    config = Config(inference=True)
    with pytest.raises(UsageError) as info:
        config.check()
    assert info.value.usage == usage(True)


def test_inference_flag_kept():
    assert parse_args(REQUIRED, inference=True).inference is True