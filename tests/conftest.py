pytest_plugins = ["pgsmoke.pytest_plugin"]
