"""Settings loaded from a .env file and environment variables.

Environment Variables:
    AWSSHARE_SETTINGS_FILE: Path to the .env settings file
        (default: ~/.config/awsshare/.env)
    AWSSHARE_COMPOSER: Mail composer key (default: gmail)
    AWSSHARE_BROWSER_MODE: chromium|chrome|cdp (default: chromium)
    AWSSHARE_HEADLESS: true|false (default: false, login needs a window)
    AWSSHARE_STEALTH: true|false (default: true)
    AWSSHARE_CHROME_USER_DATA: Path to Chrome profile directory
    AWSSHARE_CHROME_PROFILE: Profile name (default: Default)
    AWSSHARE_CDP_ENDPOINT: CDP URL (default: http://localhost:9222)
    AWSSHARE_TAB_DELAY: Seconds to wait after every tab switch
    AWSSHARE_LOGIN_POLL: Login wait poll interval in seconds (default: 2)
    AWSSHARE_PAGE_SETTLE: Seconds to wait after navigation (default: 2)
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

DEFAULT_COMPOSER = "gmail"
COMPOSER_KEY = "AWSSHARE_COMPOSER"


def _truthy(value: str) -> bool:
    return value.lower() not in ("false", "0", "no", "")


def settings_path() -> Path:
    """Location of the .env settings file"""
    override = os.getenv("AWSSHARE_SETTINGS_FILE")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "awsshare" / ".env"


def read_env_file(path: Path) -> Dict[str, str]:
    """Parse KEY=value lines, ignoring blanks and comments."""
    values = {}
    if not path.exists():
        return values
    with open(path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                key, value = line.split('=', 1)
                values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def load_env_file(path: Optional[Path] = None):
    """Copy .env values into os.environ without overriding existing ones."""
    for key, value in read_env_file(path or settings_path()).items():
        if key not in os.environ:
            os.environ[key] = value


def _float_env(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass
class Settings:
    composer: str = DEFAULT_COMPOSER
    browser_mode: str = "chromium"
    headless: bool = False
    stealth: bool = True
    chrome_user_data: Optional[str] = None
    chrome_profile: str = "Default"
    cdp_endpoint: str = "http://localhost:9222"
    tab_delay: Optional[float] = None
    login_poll: float = 2.0
    page_settle: float = 2.0

    @classmethod
    def load(cls, env_file: Optional[Path] = None) -> "Settings":
        """Load configuration from the .env file and environment variables."""
        load_env_file(env_file)

        settings = cls(
            composer=os.getenv(COMPOSER_KEY, DEFAULT_COMPOSER).strip().lower() or DEFAULT_COMPOSER,
            browser_mode=os.getenv("AWSSHARE_BROWSER_MODE", "chromium").lower(),
            headless=_truthy(os.getenv("AWSSHARE_HEADLESS", "false")),
            stealth=_truthy(os.getenv("AWSSHARE_STEALTH", "true")),
            chrome_user_data=os.getenv("AWSSHARE_CHROME_USER_DATA"),
            chrome_profile=os.getenv("AWSSHARE_CHROME_PROFILE", "Default"),
            cdp_endpoint=os.getenv("AWSSHARE_CDP_ENDPOINT", "http://localhost:9222"),
            tab_delay=_float_env("AWSSHARE_TAB_DELAY", None),
            login_poll=_float_env("AWSSHARE_LOGIN_POLL", 2.0),
            page_settle=_float_env("AWSSHARE_PAGE_SETTLE", 2.0),
        )

        # Auto-detect Chrome user data path on macOS if not set
        if settings.browser_mode == "chrome" and not settings.chrome_user_data:
            default_path = Path.home() / "Library/Application Support/Google/Chrome"
            if default_path.exists():
                settings.chrome_user_data = str(default_path)

        return settings


def save_composer(composer: str, path: Optional[Path] = None) -> Path:
    """Persist the composer choice, leaving other settings lines untouched."""
    path = path or settings_path()
    composer = composer.strip().lower()
    line = f"{COMPOSER_KEY}={composer}\n"

    lines = []
    if path.exists():
        with open(path) as f:
            lines = f.readlines()

    replaced = False
    for i, existing in enumerate(lines):
        key = existing.split('=', 1)[0].strip()
        if '=' in existing and key == COMPOSER_KEY and not existing.lstrip().startswith('#'):
            lines[i] = line
            replaced = True
    if not replaced:
        if lines and not lines[-1].endswith("\n"):
            lines[-1] += "\n"
        lines.append(line)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.writelines(lines)

    os.environ[COMPOSER_KEY] = composer
    return path
