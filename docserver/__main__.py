"""CLI entrypoint for launching the FastAPI application."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "docserver.api:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=False,
    )


if __name__ == "__main__":
    main()
