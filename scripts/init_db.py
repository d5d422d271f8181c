"""Initialize the mediaopt database and storage directories."""

from mediaopt.config import load_config


def main() -> None:
    config = load_config()
    print(f"Database initialized at {config.settings.database_url}.")


if __name__ == "__main__":
    main()
