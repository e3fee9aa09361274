from __future__ import annotations

import pytest


def _selected_by_markexpr(config: pytest.Config, marker_name: str) -> bool:
    # A loose check is enough: we only need to know whether `-m` mentions the marker.
    expr = getattr(config.option, "markexpr", "") or ""
    return marker_name in expr


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """
    Threaded invariant tests are slow, so they only run with `-m concurrency`.
    Probabilistic demonstrations additionally need `-m demo`.
    """
    run_concurrency = _selected_by_markexpr(config, "concurrency") or _selected_by_markexpr(config, "demo")
    run_demo = _selected_by_markexpr(config, "demo")

    skip_concurrency = pytest.mark.skip(reason="run with `pytest -m concurrency` to execute invariant tests")
    skip_demo = pytest.mark.skip(reason="run with `pytest -m demo` to execute probabilistic demonstrations")

    for item in items:
        if item.get_closest_marker("demo") is not None and not run_demo:
            item.add_marker(skip_demo)
        elif item.get_closest_marker("concurrency") is not None and not run_concurrency:
            item.add_marker(skip_concurrency)
