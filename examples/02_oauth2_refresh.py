"""
OAuth2 Refresh Example.

Demonstrates single-flight credential refresh: while the token is being
refreshed, every other request waits and is replayed with the new token.
"""

import sys
import os
import threading
from datetime import datetime, timedelta, timezone

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from http_controller import (
    RequestController,
    OAuth2Manager,
    Credential,
    InMemoryCredentialStore,
)

API_URL = "https://httpbin.org/"


class DemoTokenManager(OAuth2Manager):
    """
    Token manager against a demo endpoint.

    httpbin echoes the form back, so the "access token" is built from
    the refresh token. A real manager would parse the token response.
    """

    auth_identifier = "demo-api"

    def __init__(self):
        self.refresh_count = 0

    def reauthenticate(self, credential, callback):
        self.refresh_count += 1
        refresh_token = credential.refresh_token if credential else "initial-refresh-token"

        def on_token(response, error):
            if error is not None:
                callback(None, error, False)
                return
            form = response.json()["form"]
            callback(
                Credential.oauth2(
                    f"access-{form['refresh_token']}-{self.refresh_count}",
                    refresh_token=form['refresh_token'],
                    expiration_date=datetime.now(timezone.utc) + timedelta(hours=1),
                ),
                None,
                True,
            )

        self.request_controller.post(
            "post",
            body={"grant_type": "refresh_token", "refresh_token": refresh_token},
            content_type="application/x-www-form-urlencoded",
            completion=on_token,
        )


def example_1_refresh_before_first_request():
    """Example 1: No credential yet - the first request triggers a refresh."""
    print("\n" + "=" * 60)
    print("EXAMPLE 1: Refresh before first request")
    print("=" * 60 + "\n")

    store = InMemoryCredentialStore()
    manager = DemoTokenManager()

    with RequestController(API_URL) as auth_controller, \
            RequestController(API_URL, credential_store=store) as controller:
        controller.configure_oauth2(manager, auth_controller=auth_controller)

        remaining = threading.Semaphore(0)

        def on_done(response, error):
            if error is not None:
                print(f"Failed: {error}")
            else:
                print(f"Authorization sent: {response.json()['headers'].get('Authorization')}")
            remaining.release()

        for _ in range(3):
            controller.get("headers", completion=on_done)
        for _ in range(3):
            remaining.acquire(timeout=30)

        print(f"\nRefreshes performed: {manager.refresh_count}")
        print(f"Stored credential: {store.retrieve(manager.auth_identifier)}")


def example_2_expired_credential():
    """Example 2: Stored but expired credential is refreshed on use."""
    print("\n" + "=" * 60)
    print("EXAMPLE 2: Expired credential")
    print("=" * 60 + "\n")

    store = InMemoryCredentialStore()
    store.store(
        Credential.oauth2(
            "stale-token",
            refresh_token="r1",
            expiration_date=datetime.now(timezone.utc) - timedelta(minutes=5),
        ),
        DemoTokenManager.auth_identifier,
    )
    manager = DemoTokenManager()

    with RequestController(API_URL) as auth_controller, \
            RequestController(API_URL, credential_store=store) as controller:
        controller.configure_oauth2(manager, auth_controller=auth_controller)
        controller.get(
            "headers",
            completion=lambda response, error: print(
                f"Authorization sent: {response.json()['headers'].get('Authorization')}"
            ),
            synchronous=True,
        )


if __name__ == "__main__":
    example_1_refresh_before_first_request()
    example_2_expired_credential()
