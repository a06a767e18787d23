import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "pitchboard.main:app",
        host=os.environ.get("PITCHBOARD_HOST", "127.0.0.1"),
        port=int(os.environ.get("PITCHBOARD_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
