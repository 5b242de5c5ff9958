"""
End-to-end tests for the bridging engine.
"""

import json

import pytest

from ctgbridge.core.calibrator import CalibrationError
from ctgbridge.engines.bridge import BridgeConfig, BridgeEngine
from ctgbridge.utils.graph import GraphFile


def _engine(inputs, config=None, **kwargs):
    built = {}

    def builder(params, pool):
        built['params'] = params
        return GraphFile.load(inputs['graph_file'], pool)

    engine = BridgeEngine(
        read_file=inputs['read_file'],
        contig_file=inputs['contig_file'],
        read2ctg_file=inputs['read2ctg_file'],
        bridged_contig_file=inputs['output_file'],
        graph_builder=builder,
        config=config if config is not None else BridgeConfig(output_directory=str(inputs['output_dir'])),
        **kwargs
    )
    return engine, built


class TestBridgeConfig:

    def test_defaults_request_auto_selection(self):
        config = BridgeConfig()
        assert config.read2ctg_min_identity < 0
        assert config.read2ctg_max_overhang < 0
        assert config.ctg2ctg_min_identity < 0
        assert config.ctg2ctg_max_overhang < 0

    def test_invalid_select_branch(self):
        with pytest.raises(ValueError, match="select_branch"):
            BridgeConfig(select_branch="all")

    def test_invalid_thread_size(self):
        with pytest.raises(ValueError):
            BridgeConfig(thread_size=0)

    def test_graph_parameters(self):
        params = BridgeConfig(read2ctg_min_coverage=5, select_branch="no").graph_parameters()
        assert params['read2ctg_min_coverage'] == 5
        assert params['select_branch'] == "no"
        assert 'output_directory' not in params


class TestBridgeEngine:

    def test_run_with_auto_selected_thresholds(self, bridge_inputs):
        engine, built = _engine(bridge_inputs)
        result = engine.run()

        assert result == bridge_inputs['output_file']
        assert engine.config.read2ctg_min_identity == pytest.approx(98 - 3 * 1.4826)
        assert engine.config.read2ctg_max_overhang == 0
        assert built['params']['read2ctg_min_identity'] == engine.config.read2ctg_min_identity

        lines = result.read_text().splitlines()
        contigs, reads = bridge_inputs['contigs'], bridge_inputs['reads']
        # ctgC (300 bp) is below the default min_contig_length of 500
        assert lines == [">ctgA_r1", contigs["ctgA"] + reads["r1"][3000:5000]]

    def test_only_patch_reads_are_loaded(self, bridge_inputs):
        engine, _ = _engine(bridge_inputs)
        engine.run()
        pool = engine.read_store.pool
        assert pool.get_id("r1") in engine.read_store
        assert pool.get_id("r2") not in engine.read_store

    def test_given_thresholds_skip_calibration(self, bridge_inputs, temp_output_dir):
        bridge_inputs['read2ctg_file'] = temp_output_dir / "broken.paf"
        bridge_inputs['read2ctg_file'].write_text("not a paf line\n")
        config = BridgeConfig(read2ctg_min_identity=90, read2ctg_max_overhang=100,
                              output_directory=str(temp_output_dir))
        engine, built = _engine(bridge_inputs, config)
        engine.run()
        assert built['params']['read2ctg_min_identity'] == 90
        assert bridge_inputs['output_file'].exists()

    def test_ctg2ctg_calibration(self, bridge_inputs, write_paf):
        ctg2ctg = write_paf([
            ("ctgA", 5000, 2000, 5000, "+", "ctgB", 4000, 0, 3000, 2985, 3000),
        ], "ctg2ctg.paf")
        engine, built = _engine(bridge_inputs, ctg2ctg_file=str(ctg2ctg))
        engine.auto_select_params()

        assert engine.config.ctg2ctg_min_identity == pytest.approx(99.5)
        assert engine.config.ctg2ctg_max_overhang == 0

    def test_ctg2ctg_skipped_without_file(self, bridge_inputs):
        engine, _ = _engine(bridge_inputs)
        engine.auto_select_params()
        assert engine.config.ctg2ctg_min_identity < 0

    def test_empty_calibration_sample_is_an_error(self, bridge_inputs, write_paf):
        bridge_inputs['read2ctg_file'] = write_paf([
            ("r1", 6000, 0, 1500, "+", "ctgA", 5000, 3500, 5000, 1490, 1500),
            ("r2", 6000, 0, 1900, "+", "ctgA", 5000, 3100, 5000, 1890, 1900),
        ], "short.paf")
        engine, built = _engine(bridge_inputs)

        with pytest.raises(CalibrationError):
            engine.run()
        assert 'params' not in built
        assert not bridge_inputs['output_file'].exists()

    def test_graph_anchor_missing_from_contigs(self, bridge_inputs):
        bridge_inputs['graph_file'].write_text(
            '{"paths": [["ctgA+", "ctgZ+"]],'
            ' "edges": [{"from": "ctgA+", "to": "ctgZ+", "link_length": 7000, "seq_areas": []}]}'
        )
        engine, _ = _engine(bridge_inputs)

        with pytest.raises(ValueError, match="ctgZ"):
            engine.run()
        assert not bridge_inputs['output_file'].exists()

    def test_dump(self, bridge_inputs):
        config = BridgeConfig(output_directory=str(bridge_inputs['output_dir']), dump=True)
        engine, _ = _engine(bridge_inputs, config)
        engine.run()

        out_dir = bridge_inputs['output_dir']
        id2name = (out_dir / "id2name.txt").read_text().splitlines()
        assert any(line.endswith("\tctgA") for line in id2name)

        thresholds = json.loads((out_dir / "thresholds.json").read_text())
        assert thresholds['read2ctg_min_identity'] == pytest.approx(98 - 3 * 1.4826)
        assert thresholds['dump'] is True
