"""Run the API with uvicorn: ``python -m pengawas``."""
import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "pengawas.app:create_app",
        factory=True,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "5000")),
    )


if __name__ == "__main__":
    main()
