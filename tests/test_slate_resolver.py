import os

import pytest

from slate.slate_datatypes import DirectiveResolutionError, ScriptMode
from slate.slate_resolver import ResolverLogLevel, RuntimeDependencyResolver


async def resolve(resolver, tmp_path, text):
    return await resolver.resolve(str(tmp_path), ScriptMode.REPL, (), text)


@pytest.mark.asyncio
async def test_reference_directory(tmp_path):
    (tmp_path / "lib").mkdir()
    deps = await resolve(RuntimeDependencyResolver(), tmp_path, "reference ./lib")
    assert len(deps) == 1
    assert deps[0].references == frozenset([str(tmp_path / "lib")])
    assert deps[0].scripts == ()


@pytest.mark.asyncio
async def test_reference_module_file_uses_its_directory(tmp_path):
    (tmp_path / "pkgs").mkdir()
    (tmp_path / "pkgs" / "single.py").write_text("", encoding="utf-8")
    deps = await resolve(RuntimeDependencyResolver(), tmp_path, "reference pkgs/single.py")
    assert deps[0].references == frozenset([str(tmp_path / "pkgs")])


@pytest.mark.asyncio
async def test_reference_file_locator(tmp_path):
    (tmp_path / "lib").mkdir()
    deps = await resolve(RuntimeDependencyResolver(), tmp_path, f"reference file://{tmp_path / 'lib'}")
    assert deps[0].references == frozenset([str(tmp_path / "lib")])


@pytest.mark.asyncio
async def test_missing_path_is_a_fault(tmp_path):
    with pytest.raises(DirectiveResolutionError) as exc:
        await resolve(RuntimeDependencyResolver(), tmp_path, "reference ./nowhere")
    assert "not found" in exc.value.reason


@pytest.mark.asyncio
async def test_installed_distribution_with_transitive_requirements(tmp_path):
    deps = await resolve(RuntimeDependencyResolver(), tmp_path, "reference pytest")
    names = {d.name.lower() for d in deps}
    assert "pytest" in names
    assert "pluggy" in names
    for dep in deps:
        for path in dep.references:
            assert os.path.isabs(path)


@pytest.mark.asyncio
async def test_missing_distribution_is_a_fault(tmp_path):
    messages = []
    resolver = RuntimeDependencyResolver(log=lambda level, msg, exc=None: messages.append((level, msg)))
    with pytest.raises(DirectiveResolutionError) as exc:
        await resolve(resolver, tmp_path, "reference definitely-not-installed-xyz")
    assert "not installed" in exc.value.reason
    assert any(level is ResolverLogLevel.ERROR for level, _ in messages)


@pytest.mark.asyncio
async def test_version_conflict_is_a_fault(tmp_path):
    with pytest.raises(DirectiveResolutionError) as exc:
        await resolve(RuntimeDependencyResolver(), tmp_path, "reference pytest<1")
    assert "version conflict" in exc.value.reason


@pytest.mark.asyncio
async def test_load_local_script(tmp_path):
    (tmp_path / "util.py").write_text("Y = 2\n", encoding="utf-8")
    deps = await resolve(RuntimeDependencyResolver(), tmp_path, "load util.py")
    assert deps[0].name == "util.py"
    assert deps[0].scripts == (str(tmp_path / "util.py"),)
    assert deps[0].references == frozenset()


@pytest.mark.asyncio
async def test_load_missing_script(tmp_path):
    with pytest.raises(DirectiveResolutionError):
        await resolve(RuntimeDependencyResolver(), tmp_path, "load gone.py")


@pytest.mark.asyncio
async def test_load_remote_script_is_downloaded_once(tmp_path, monkeypatch):
    calls = []

    async def fake_get_text(url, config=None):
        calls.append((url, config))
        return "REMOTE = 'yes'\n"

    monkeypatch.setattr("slate.slate_http.http_get_text", fake_get_text)
    resolver = RuntimeDependencyResolver(cache_dir=str(tmp_path / "cache"), http_config={"retries": 0})

    first = await resolve(resolver, tmp_path, "load https://example.com/remote.py")
    second = await resolve(resolver, tmp_path, "load https://example.com/remote.py")
    path = first[0].scripts[0]
    assert first[0].name == "https://example.com/remote.py"
    assert second[0].scripts == (path,)
    assert open(path, encoding="utf-8").read() == "REMOTE = 'yes'\n"
    assert calls == [("https://example.com/remote.py", {"retries": 0})]


@pytest.mark.asyncio
async def test_remote_failure_is_a_fault(tmp_path, monkeypatch):
    async def failing_get_text(url, config=None):
        raise RuntimeError("HTTP 404 for url")

    monkeypatch.setattr("slate.slate_http.http_get_text", failing_get_text)
    resolver = RuntimeDependencyResolver(cache_dir=str(tmp_path / "cache"))
    with pytest.raises(DirectiveResolutionError) as exc:
        await resolve(resolver, tmp_path, "load https://example.com/missing.py")
    assert "download failed" in exc.value.reason


@pytest.mark.asyncio
async def test_non_directive_text_is_rejected(tmp_path):
    with pytest.raises(DirectiveResolutionError):
        await resolve(RuntimeDependencyResolver(), tmp_path, "x = 1")
