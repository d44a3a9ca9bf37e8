"""
File Download / Upload Examples.

Downloads run in the background session and report progress;
a tag groups transfers so they can be cancelled together.
"""

import sys
import os
import shutil
import tempfile
import threading

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from http_controller import RequestController, RequestCancelledError, RecoverableError

TRANSFER_TAG = 7


def download_with_progress():
    """Download a file and move it out of the temporary directory."""
    print("\n=== Download with Progress ===")

    done = threading.Event()
    target = os.path.join(tempfile.gettempdir(), "http_controller_demo.bin")

    def on_progress(bytes_done, bytes_total):
        if bytes_total > 0:
            print(f"  {bytes_done}/{bytes_total} bytes ({bytes_done * 100 // bytes_total}%)")
        else:
            print(f"  {bytes_done} bytes")

    def on_done(response, error):
        if error is not None:
            print(f"Download failed: {error}")
        else:
            shutil.move(response.file_path, target)
            print(f"Saved to {target}")
        done.set()

    with RequestController("https://httpbin.org/") as controller:
        controller.download_file("bytes/102400", on_progress=on_progress, completion=on_done)
        done.wait(timeout=60)


def upload_from_memory():
    """Upload bytes from memory."""
    print("\n=== Upload from Memory ===")

    done = threading.Event()

    def on_done(response, error):
        print(f"Upload status: {response.status_code if response else error}")
        done.set()

    with RequestController("https://httpbin.org/") as controller:
        controller.upload_file("post", data=b"hello, upload", content_type="text/plain", completion=on_done)
        done.wait(timeout=30)


def cancel_by_tag():
    """Cancel every transfer with a tag."""
    print("\n=== Cancel by Tag ===")

    finished = threading.Semaphore(0)

    def on_done(response, error):
        if isinstance(error, RecoverableError) and isinstance(error.error, RequestCancelledError):
            print("  transfer cancelled")
        else:
            print(f"  transfer finished: {response.status_code if response else error}")
        finished.release()

    with RequestController("https://httpbin.org/") as controller:
        for seconds in (5, 6, 7):
            controller.download_file(f"delay/{seconds}", completion=on_done, tag=TRANSFER_TAG)
        cancelled = controller.cancel_requests_with_tag(TRANSFER_TAG)
        print(f"Cancelled {cancelled} transfer(s)")
        for _ in range(3):
            finished.acquire(timeout=30)


if __name__ == "__main__":
    download_with_progress()
    upload_from_memory()
    cancel_by_tag()
