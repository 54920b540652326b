from types import SimpleNamespace

import pytest

import sketchgcs.__main__ as cli
import sketchgcs.cad as cad


def test_main_lists_scenes(capsys):
    cli.main(["--list"])

    out = capsys.readouterr().out
    assert "coincident:" in out
    assert "drag:" in out


def test_main_solves_scene(capsys):
    cli.main(["coincident", "--log-level", "WARNING"])

    out = capsys.readouterr().out
    assert "Scene: coincident" in out
    assert "Algorithm: dogleg" in out
    assert "Converged: True" in out


def test_main_reports_forced_sqp(capsys):
    cli.main(["drag", "--algorithm", "1", "--log-level", "WARNING"])

    assert "Algorithm: sqp" in capsys.readouterr().out


def test_main_rejects_unknown_scene():
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["nope"])
    assert excinfo.value.code == 1


@pytest.mark.parametrize("flag, value", [("--algorithm", "simplex"), ("--debug-mode", "loud")])
def test_main_rejects_bad_selectors(flag, value):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["coincident", flag, value])
    assert excinfo.value.code == 2


def test_main_runs_cad_cross_check(capsys, monkeypatch):
    calls = []

    class _FakeAdapter:
        def solve_sketch(self, sketch):
            calls.append(sketch)
            return cad.AdapterOK(coords={0: (1.0, 2.0)}, dof=0)

    monkeypatch.setattr(cad, "SlvsAdapter", _FakeAdapter)

    cli.main(["coincident", "--cad", "slvs", "--log-level", "WARNING"])

    out = capsys.readouterr().out
    assert len(calls) == 1
    assert "CAD status:" in out
    assert "#0: (1.000000, 2.000000)" in out


def test_main_prints_cad_failures(capsys, monkeypatch):
    failure = cad.AdapterFail(failures=[3], dof=1)
    monkeypatch.setattr(cad, "SlvsAdapter", lambda: SimpleNamespace(solve_sketch=lambda sketch: failure))

    cli.main(["conflicting", "--cad", "slvs", "--log-level", "WARNING"])

    out = capsys.readouterr().out
    assert "ok: False" in out
    assert "failures: [3]" in out
