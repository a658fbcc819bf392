pytest_plugins = [
    "tests.fixtures.db_client",
    "tests.fixtures.app_client",
]
