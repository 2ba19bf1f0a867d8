from importlib import resources


def load_limits() -> str:
    with resources.files(__package__).joinpath("data/limits.conf").open("r", encoding="utf-8") as fh:
        return fh.read()
