import pytest

import slate.slate_repl as repl
from slate.slate_engine import InteractiveEngine


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SLATE_CONFIG", raising=False)
    monkeypatch.delenv("SLATE_REFS_FILE", raising=False)
    monkeypatch.setattr(InteractiveEngine, "refs_file_path", None)
    # Keep the global logging configuration untouched between tests
    monkeypatch.setattr(repl, "setup_logging", lambda *a, **kw: None)


def feed(monkeypatch, lines):
    it = iter(lines)

    async def fake_ainput(prompt: str) -> str:
        return next(it)
    monkeypatch.setattr(repl, "ainput", fake_ainput)


@pytest.mark.asyncio
async def test_repl_exit_immediately(monkeypatch, capsys):
    feed(monkeypatch, ["exit"])
    await repl.main([])
    out = capsys.readouterr().out
    assert "SLATE console v0.1" in out
    assert "Type 'exit' or press Ctrl+D to quit." in out


@pytest.mark.asyncio
async def test_repl_prints_output_and_values(monkeypatch, capsys):
    feed(monkeypatch, [
        "print('hello from slate')",
        "x = 1 + 2",
        "x",
        "exit",
    ])
    await repl.main([])
    out, err = capsys.readouterr()
    assert "hello from slate" in out
    assert "\n3\n" in out
    assert "Error" not in err


@pytest.mark.asyncio
async def test_repl_errors_print_to_stderr_and_continue(monkeypatch, capsys):
    feed(monkeypatch, [
        "1 / 0",
        "'still alive'",
        "exit",
    ])
    await repl.main([])
    out, err = capsys.readouterr()
    assert "ZeroDivisionError" in err
    assert "'still alive'" in out


@pytest.mark.asyncio
async def test_repl_eof_quits(monkeypatch, capsys):
    async def fake_ainput(prompt: str) -> str:
        raise EOFError
    monkeypatch.setattr(repl, "ainput", fake_ainput)
    await repl.main([])
    assert "Exiting." in capsys.readouterr().out


@pytest.mark.asyncio
async def test_run_script_file(tmp_path, capsys):
    script = tmp_path / "job.py"
    script.write_text("total = sum(range(5))\ntotal\n", encoding="utf-8")
    await repl.main([str(script)])
    assert capsys.readouterr().out.strip().splitlines()[-1] == "10"


@pytest.mark.asyncio
async def test_run_script_file_failure_exits_1(tmp_path, capsys):
    script = tmp_path / "bad.py"
    script.write_text("raise ValueError('nope')\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        await repl.main([str(script)])
    assert exc.value.code == 1
    assert "ValueError: nope" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_repl_renders_self_referencing_values(monkeypatch, capsys):
    feed(monkeypatch, [
        "a = []; a.append(a); a",
        "'alive'",
        "exit",
    ])
    await repl.main([])
    out = capsys.readouterr().out
    assert "[[...]]" in out
    assert "'alive'" in out


@pytest.mark.asyncio
async def test_repl_survives_unexpected_errors(monkeypatch, capsys):
    feed(monkeypatch, ["1", "2", "exit"])
    real_print_result = repl.print_result
    calls = []

    def flaky_print_result(result):
        calls.append(result)
        if len(calls) == 1:
            raise RuntimeError("render failed")
        real_print_result(result)
    monkeypatch.setattr(repl, "print_result", flaky_print_result)

    await repl.main([])
    out, err = capsys.readouterr()
    assert "Error: render failed" in err
    assert "\n2\n" in out
