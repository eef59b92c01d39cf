"""
Tests for the phylohmm-train command.
"""
import pytest
import numpy as np
import pandas as pd

from phylohmm.cli.train import load_samples, main, parse_args


@pytest.fixture
def sample_tsv(tmp_path, short_samples):
    rows = []
    for s, seq in enumerate(short_samples):
        for value in seq:
            rows.append({'sample': f"seq{s}", 'symbol': 'AB'[value], 'extra': 1})
    path = tmp_path / "samples.tsv"
    pd.DataFrame(rows).to_csv(path, sep='\t', index=False)
    return path


class TestLoadSamples:
    def test_groups_by_sample(self, sample_tsv, short_samples):
        samples, symbols = load_samples(str(sample_tsv))

        assert symbols == ['A', 'B']
        np.testing.assert_array_equal(samples.lengths, short_samples.lengths)
        np.testing.assert_array_equal(samples.X, short_samples.X)

    def test_missing_column_raises(self, tmp_path):
        path = tmp_path / "bad.tsv"
        pd.DataFrame({'sample': ['a', 'a'], 'value': [0, 1]}).to_csv(path, sep='\t', index=False)
        with pytest.raises(ValueError, match='symbol'):
            load_samples(str(path))


class TestParseArgs:
    def test_defaults(self):
        args = parse_args(['-i', 'in.tsv'])
        assert args.input == 'in.tsv'
        assert args.n_states == 2
        assert args.restarts == 10
        assert args.log is None

    def test_input_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestMain:
    def test_trains_and_reports(self, sample_tsv, capsys):
        main(['-i', str(sample_tsv), '-c', '2', '-s', '3'])

        out = capsys.readouterr().out
        assert 'Samples: 3 (27 positions)' in out
        assert 'Best log2 likelihood' in out
        assert 'Transition matrix' in out
        assert 'Emission probabilities' in out
        assert out.rstrip().endswith('Done!')

    def test_writes_log_file(self, sample_tsv, tmp_path):
        log_path = tmp_path / "em.log"
        main(['-i', str(sample_tsv), '-c', '1', '--log', str(log_path)])

        text = log_path.read_text()
        assert 'logl\t(0,0)\t(0,1)\t(1,0)\t(1,1)' in text
        assert 'Number of iterations' in text

    def test_bad_input_exits(self, tmp_path, capsys):
        path = tmp_path / "bad.tsv"
        pd.DataFrame({'sample': ['a'], 'value': [0]}).to_csv(path, sep='\t', index=False)

        with pytest.raises(SystemExit) as exc:
            main(['-i', str(path)])

        assert exc.value.code == 1
        assert 'Error' in capsys.readouterr().out

    def test_missing_file_exits(self, tmp_path):
        with pytest.raises(SystemExit):
            main(['-i', str(tmp_path / "missing.tsv")])
