"""
Environment Configuration Examples.

Demonstrates loading configuration from .env files and environment variables.
"""

import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from http_controller import RequestController
from http_controller.core.env_config import load_from_env, config_summary


def example_1_load_from_env_file():
    """Example 1: Load from an env file."""
    print("\n" + "=" * 60)
    print("EXAMPLE 1: Load from env file")
    print("=" * 60 + "\n")

    with open('.env.example-demo', 'w') as f:
        f.write("HTTP_CONTROLLER_BASE_URL=https://httpbin.org/\n")
        f.write("HTTP_CONTROLLER_LOG_LEVEL=INFO\n")
        f.write("HTTP_CONTROLLER_LOG_FORMAT=text\n")

    try:
        config = load_from_env(env_file='.env.example-demo')
        print(config_summary(config))

        with RequestController(config=config) as controller:
            controller.get(
                "get",
                completion=lambda response, error: print(
                    f"\nResponse: {response.status_code if response else error}"
                ),
                synchronous=True,
            )
    finally:
        os.remove('.env.example-demo')


def example_2_environment_variables():
    """Example 2: Environment variables override the env file."""
    print("\n" + "=" * 60)
    print("EXAMPLE 2: Environment Variables")
    print("=" * 60 + "\n")

    os.environ["HTTP_CONTROLLER_BASE_URL"] = "https://api.example.com/"
    os.environ["HTTP_CONTROLLER_TIMEOUT_READ"] = "10"
    try:
        print(config_summary(load_from_env()))
    finally:
        del os.environ["HTTP_CONTROLLER_BASE_URL"]
        del os.environ["HTTP_CONTROLLER_TIMEOUT_READ"]


def example_3_overrides():
    """Example 3: Explicit overrides win over everything."""
    print("\n" + "=" * 60)
    print("EXAMPLE 3: Overrides")
    print("=" * 60 + "\n")

    config = load_from_env(base_url="https://staging.example.com/", log_level="DEBUG")
    print(config_summary(config))


if __name__ == "__main__":
    example_1_load_from_env_file()
    example_2_environment_variables()
    example_3_overrides()
