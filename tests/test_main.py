import pytest

from autoclick.config import AutomationConfig, Region
from main import build_parser, resolve_automation


def _resolve(argv, base=None):
    args = build_parser().parse_args(argv)
    return resolve_automation(base or AutomationConfig(), args)


def test_positional_arguments():
    cfg = _resolve(["accept.png", "12", "3", "5", "-7", "1500"])
    assert cfg.template_path == "accept.png"
    assert cfg.tolerance == 12
    assert cfg.stride == 3
    assert cfg.click_offset == (5, -7)
    assert cfg.scan_interval_ms == 1500
    assert cfg.change_detection is False


def test_no_image_turns_on_change_detection():
    cfg = _resolve([])
    assert cfg.template_path is None
    assert cfg.change_detection is True
    assert cfg.tolerance == 30
    assert cfg.scan_interval_ms == 3000


def test_empty_image_overrides_yaml_template():
    cfg = _resolve([""], base=AutomationConfig(template_path="from_yaml.png"))
    assert cfg.template_path is None
    assert cfg.change_detection is True


def test_cli_keeps_yaml_values_it_does_not_mention():
    base = AutomationConfig(template_path="a.png", tolerance=4, click_offset=(9, 9))
    cfg = _resolve(["a.png", "4", "2", "1"], base=base)
    assert cfg.click_offset == (1, 9)
    assert cfg.tolerance == 4


def test_flags():
    cfg = _resolve(["b.png", "--region", "1,2,30,40", "--change-detect", "--change-threshold", "0"])
    assert cfg.region == Region(1, 2, 30, 40)
    assert cfg.change_detection is True
    assert cfg.change_threshold_percent == 1


def test_bad_region_is_rejected():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--region", "1,2"])
