import pytest


@pytest.fixture(autouse=True)
def isolate_cwd(tmp_path, monkeypatch):
    """Run every test from an empty temporary directory.

    The CLI resolves the project root and ``mobileops.yaml`` from the
    working directory; this keeps a stray configuration, repository or
    ``.mobilectl`` directory around the checkout from leaking into tests.
    """
    monkeypatch.chdir(tmp_path)
    yield tmp_path
