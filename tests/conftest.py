pytest_plugins = ["httptesting.pytest_plugin"]
