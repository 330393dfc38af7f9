import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]

DOMAIN_TEST_DIRS = [
    "tests/ordering/domain/",
    "tests/notifications/domain/",
    "tests/issues/domain/",
]


def _install(session: nox.Session) -> None:
    """Install storefront with its test extra into the nox virtualenv."""
    session.run("poetry", "install", "--extras", "test", external=True)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run the whole suite on every supported interpreter."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_domain(session: nox.Session) -> None:
    """Aggregate tests only; no event loop or HTTP client involved."""
    _install(session)
    session.run("pytest", *DOMAIN_TEST_DIRS, *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_bdd(session: nox.Session) -> None:
    """Gherkin scenarios for orders, delivery jobs and issues."""
    _install(session)
    session.run("pytest", "-m", "bdd", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_api(session: nox.Session) -> None:
    """HTTP surface through the FastAPI test client."""
    _install(session)
    session.run("pytest", "-m", "integration", *session.posargs)
