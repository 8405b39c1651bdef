import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "-Q",
        "--quick",
        action="store_true",
        default=False,
        dest="quick",
        help="Skip tests marked with @pytest.mark.statistical (repeated sampling checks)",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if not config.getoption("quick"):
        return
    skip_statistical = pytest.mark.skip(reason="skipped by -Q/--quick")
    for item in items:
        if "statistical" in item.keywords:
            item.add_marker(skip_statistical)
