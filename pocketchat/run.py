"""Backend launcher: ``python -m pocketchat.run`` or the ``pocketchat`` script."""
import uvicorn


def main() -> None:
    uvicorn.run("pocketchat.main:app", host="127.0.0.1", port=8765)


if __name__ == "__main__":
    main()
