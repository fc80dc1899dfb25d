from staymaster.cli._debug_utils import _dbg, _engine_debug_sink


def test_dbg_prefix_and_suppression(capsys):
    class Args:
        debug = True

    _dbg(Args(), "hello")
    out = capsys.readouterr().out.strip()
    assert out.startswith("[debug] ")
    assert out.endswith("hello")

    class ArgsOff:
        debug = False

    _dbg(ArgsOff(), "silent")
    out_off = capsys.readouterr().out
    assert out_off == ""


def test_engine_debug_sink_only_when_enabled(capsys):
    class Args:
        debug = True

    class ArgsOff:
        debug = False

    assert _engine_debug_sink(ArgsOff()) is None
    sink = _engine_debug_sink(Args())
    sink("DISPATCH goal_type=uk_ilr")
    assert capsys.readouterr().out.strip() == "[debug] DISPATCH goal_type=uk_ilr"
