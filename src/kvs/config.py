"""Configuration parser for the key-value store."""

from pathlib import Path
from typing import Optional, cast

DEFAULT_MAX_RETRIES = 5


class ConfigBoolParsingError(Exception):
    """Raised when the parsing of bool strings in
    the config file was not successful.
    """


class ConfigNotFoundError(Exception):
    """Raised when any of the required configuration settings is not
    provided.
    """


class KvsConfig:
    """A class to save key-value store configuration settings."""

    def __init__(
        self,
        spreadsheet_id: str,
        credentials_path: Path,
        sheet_id: Optional[str] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        log_operations: bool = False,
    ) -> None:
        """Initialize the key-value store configuration.

        Args:
            spreadsheet_id (str): The id of the backing Google spreadsheet.
            credentials_path (Path): The path to the service-account
            key file.
            sheet_id (Optional[str]): The id of the sheet (tab) holding
            the rows. The first sheet is used when None.
            max_retries (int): How many times a rate-limited request
            is retried.
            log_operations (bool): Whether to log every store operation.

        """
        self.spreadsheet_id = spreadsheet_id
        self.credentials_path = credentials_path
        self.sheet_id = sheet_id
        self.max_retries = max_retries
        self.log_operations = log_operations

    def __repr__(self) -> str:
        """Return a string representation of the configuration object.

        Returns:
            str: A formatted string representing the configuration settings.

        """
        return f"""
                Key-value store configuration settings:
                Spreadsheet id: {self.spreadsheet_id}
                Sheet id: {self.sheet_id or "FIRST SHEET"}
                Credentials: {self.credentials_path}
                Max retries: {self.max_retries}
                Log operations: {"YES" if self.log_operations else "NO"}
            """


def parse_bool(key: str, val: str) -> bool:
    """Parse given values into boolean ones (True or False).

    Args:
        key (str): The key to parse the boolean for.
        val (str): The value to be parsed to boolean.

    Raises:
        ConfigBoolParsingError: If an error occured
        while parsing the value to boolean.

    Returns:
        bool: True or False depending on the output of the parser.

    """
    if val.strip().lower() in {"true", "1", "yes"}:
        return True
    if val.strip().lower() in {"false", "0", "no"}:
        return False

    raise ConfigBoolParsingError(
        f"Invalid boolean value for key '{key}' in the configuration file. "
        "Expected 'true', 'false', '1', '0', 'yes', or 'no' "
        "(case-insensitive).",
    )


def parse_int(key: str, val: str) -> int:
    """Parse a non-negative integer setting.

    Args:
        key (str): The key to parse the integer for.
        val (str): The value to be parsed.

    Raises:
        ValueError: If the value is not a non-negative integer.

    Returns:
        int: The parsed value.

    """
    try:
        number = int(val)
    except ValueError as e:
        raise ValueError(
            f"Invalid integer value for key '{key}' in the configuration "
            f"file: '{val}'.",
        ) from e
    if number < 0:
        raise ValueError(
            f"Key '{key}' in the configuration file must not be negative.",
        )
    return number


def load_config_file(config_file_path: Path) -> KvsConfig:
    """Load and parse the configuration file.

    Args:
        config_file_path (Path): Path to the config file.

    Raises:
        ConfigNotFoundError: If required settings are missing.
        FileNotFoundError: If the config or credentials file does not exist.

    Returns:
        KvsConfig: Parsed config object.

    """
    if not config_file_path.exists():
        raise FileNotFoundError(
            f"Missing required configuration file: '{config_file_path}'. "
            "Please ensure the file exists and the path is correct.",
        )

    spreadsheet_id = credentials_path = sheet_id = None
    max_retries = DEFAULT_MAX_RETRIES
    log_operations = False

    with config_file_path.open("r", encoding="utf-8") as file:
        for line in file:
            line = line.strip()

            # Skip blank lines and comments
            if not line or line.startswith("#"):
                continue

            key, sep, value = line.partition("=")
            if sep != "=":
                continue

            key = key.strip().lower()
            value = value.strip()

            if key == "spreadsheet_id":
                spreadsheet_id = value or None
            elif key == "credentials":
                credentials_path = Path(value) if value else None
            elif key == "sheet_id":
                # Kept as canonical text, compared with str(sheetId)
                sheet_id = str(parse_int("sheet_id", value)) if value else None
            elif key == "max_retries":
                max_retries = parse_int("max_retries", value)
            elif key == "log_operations":
                log_operations = parse_bool("log_operations", value)

    required = {
        "spreadsheet_id": spreadsheet_id,
        "credentials": credentials_path,
    }

    for key, val in required.items():
        if val is None:
            raise ConfigNotFoundError(
                f"Missing required configuration: '{key}'. "
                "Please ensure the config file includes a valid line for "
                f"'{key}'.",
            )

    credentials_path = cast("Path", credentials_path)
    # Relative credential paths are resolved against the config file
    if not credentials_path.is_absolute():
        credentials_path = config_file_path.parent / credentials_path
    if not credentials_path.exists():
        raise FileNotFoundError(
            f"The required credentials file {credentials_path} doesn't exist.",
        )

    return KvsConfig(
        cast("str", spreadsheet_id),
        credentials_path,
        sheet_id,
        max_retries,
        log_operations,
    )
