"""Simple entrypoint to run the capsule concierge API locally."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "server.api:get_app",
        factory=True,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8080")),
    )


if __name__ == "__main__":
    main()
