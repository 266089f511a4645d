"""
Bifrost Demo Application

Walks a token through its whole lifecycle on the backend selected by
the ``BIFROST_*`` environment variables (in-memory by default):
issue, validate, renew, list by owner and revoke.
"""

import logging
import sys

from bifrost.core.config import Config
from bifrost.core.service import TokenService
from bifrost.store.factory import create_token_store
from bifrost.types.errors import BifrostError


def main() -> int:
    """Main demo function"""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("Bifrost Token Store Demo")
    print("=" * 50)
    print()

    try:
        config = Config.from_env()
        repository = create_token_store(config)
    except BifrostError as e:
        print(f"✗ Failed to create token store: {e}")
        return 1

    service = TokenService(repository, config.token)
    print(f"✓ Using {config.backend} backend, timeout {config.token.timeout}")
    print()

    try:
        print("Step 1: Issue tokens")
        print("-" * 40)
        first = service.issue("demo-consumer", source="password", client_address="127.0.0.1")
        second = service.issue("demo-consumer", source="api-key", client_address="127.0.0.1")
        print(f"✓ Issued {first.id}")
        print(f"✓ Issued {second.id}")
        print()

        print("Step 2: Validate")
        print("-" * 40)
        token = service.validate(first.id)
        print(f"✓ Token valid: {token is not None}, expires in {token.remaining_seconds}s")
        print()

        print("Step 3: Renew")
        print("-" * 40)
        renewed = service.renew(first.id)
        print(f"✓ Renewed until {renewed.expires_at.isoformat()}")
        print()

        print("Step 4: List by owner")
        print("-" * 40)
        collection = service.list_tokens("demo-consumer")
        print(f"✓ Owner holds {collection.count} tokens")
        print()

        print("Step 5: Revoke")
        print("-" * 40)
        service.revoke(first.id)
        service.revoke_all("demo-consumer")
        print(f"✓ Owner holds {service.list_tokens('demo-consumer').count} tokens")
        print()
    except BifrostError as e:
        print(f"✗ Demo failed: {e}")
        return 1
    finally:
        repository.close()

    print("Demo completed successfully!")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nDemo interrupted by user")
        sys.exit(1)
