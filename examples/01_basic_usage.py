"""
Basic RequestController Usage Examples

Demonstrates GET, POST, PUT, DELETE requests with completion callbacks.
"""

import sys
import os
import threading

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from http_controller import RequestController, RecoverableError

BASE_URL = "https://jsonplaceholder.typicode.com/"


def print_result(response, error):
    if error is not None:
        print(f"Error: {error}")
        return
    print(f"Status: {response.status_code}")
    print(f"Data: {response.json()}")


def basic_get_request():
    """Simple synchronous GET request."""
    print("\n=== Basic GET Request ===")

    with RequestController(BASE_URL) as controller:
        controller.get("posts/1", completion=print_result, synchronous=True)


def post_with_json():
    """POST request with JSON body."""
    print("\n=== POST with JSON ===")

    with RequestController(BASE_URL) as controller:
        controller.post(
            "posts",
            body={"title": "foo", "body": "bar", "userId": 1},
            completion=print_result,
            synchronous=True,
        )


def put_and_delete():
    """PUT and DELETE requests."""
    print("\n=== PUT / DELETE ===")

    with RequestController(BASE_URL) as controller:
        controller.put(
            "posts/1",
            body={"id": 1, "title": "updated", "body": "bar", "userId": 1},
            completion=print_result,
            synchronous=True,
        )
        controller.delete(
            "posts/1",
            completion=lambda response, error: print(f"Deleted: {response.status_code}"),
            synchronous=True,
        )


def asynchronous_request():
    """Asynchronous GET: completion arrives on the callback context."""
    print("\n=== Asynchronous GET ===")

    done = threading.Event()

    def on_done(response, error):
        print_result(response, error)
        done.set()

    with RequestController(BASE_URL) as controller:
        controller.get("posts", {"userId": 1}, completion=on_done)
        print("Request scheduled, waiting...")
        done.wait(timeout=30)


def retry_on_error():
    """Errors carry Retry / Cancel options."""
    print("\n=== Retry on Error ===")

    attempts = []
    done = threading.Event()

    def on_done(response, error):
        attempts.append(error)
        if isinstance(error, RecoverableError) and len(attempts) < 3:
            print(f"Attempt {len(attempts)} failed ({error.status_code}), retrying")
            error.retry()
            return
        print(f"Finished after {len(attempts)} attempt(s)")
        done.set()

    with RequestController(BASE_URL) as controller:
        controller.get("posts/999999", completion=on_done)
        done.wait(timeout=60)


if __name__ == "__main__":
    print("=" * 50)
    print("RequestController - Basic Usage Examples")
    print("=" * 50)

    try:
        basic_get_request()
        post_with_json()
        put_and_delete()
        asynchronous_request()
        retry_on_error()

        print("\n" + "=" * 50)
        print("All examples completed successfully!")
        print("=" * 50)

    except Exception as e:
        print(f"\nError: {e}")
