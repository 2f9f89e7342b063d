import logging

import numpy as np
import pytest

from graphplane.config import EngineConfig, SnapThresholds, get_engine_config, set_engine_config
from graphplane.elements import Function, Line, CoordAnchor
from graphplane.logging_utils import debug_log_call, summarize
from graphplane.scene import Scene
from graphplane.snapping import find_nearest_snap_target


@pytest.fixture
def restore_config():
    saved = get_engine_config()
    yield
    set_engine_config(saved)


def test_defaults():
    config = EngineConfig()

    assert config.snap == SnapThresholds(line=0.25, curve=0.30, function=0.30)
    assert config.boundary_threshold == 3.0
    assert config.polygon_samples == 60
    assert config.region_rays == 120


def test_get_engine_config_returns_copy(restore_config):
    config = get_engine_config()
    config.snap.line = 99.0

    assert get_engine_config().snap.line == 0.25


def test_installed_config_drives_snapping(restore_config):
    scene = Scene()
    scene.add(Line('L', start=CoordAnchor(-5.0, 0.0), end=CoordAnchor(5.0, 0.0)))

    assert find_nearest_snap_target((0.0, 0.4), scene) is None

    set_engine_config(EngineConfig(snap=SnapThresholds(line=0.5)))

    assert find_nearest_snap_target((0.0, 0.4), scene).element_id == 'L'


def test_summarize_formats_engine_values():
    assert summarize((1.23456, 2.0)) == '(1.235, 2)'
    assert summarize(Function('f', 'x')) == "Function('f')"
    assert summarize(np.array([1.0, 3.0])) == 'ndarray(shape=(2,), min=1, max=3)'
    assert summarize(list(range(10)), max_items=2) == '[0, 1, ... 10 total]'
    assert summarize(None) == 'None'


def test_debug_log_call_logs_entry_and_exit(caplog):
    logger = logging.getLogger('graphplane.tests')

    @debug_log_call(logger)
    def double(value):
        return value * 2

    with caplog.at_level(logging.DEBUG, logger='graphplane.tests'):
        assert double(4) == 8

    messages = [record.getMessage() for record in caplog.records]
    assert any(m.startswith('Entering') and 'double' in m for m in messages)
    assert any(m.startswith('Exiting') and m.endswith('-> 8') for m in messages)
