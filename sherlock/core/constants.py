"""
Project constants definitions
"""

# ============================================================
# Application
# ============================================================

APP_NAME = "Sherlock"
APP_DESCRIPTION = "AI-powered SSH remote operations tool"

# ============================================================
# SSH Defaults
# ============================================================

DEFAULT_SSH_PORT = 22
DEFAULT_SSH_TIMEOUT = 30
DEFAULT_TERM_TYPE = "xterm-256color"

# Fallback PTY geometry when the local terminal size cannot be queried
DEFAULT_TERMINAL_WIDTH = 80
DEFAULT_TERMINAL_HEIGHT = 24

# ============================================================
# SSH Paths
# ============================================================

SSH_DIR = "~/.ssh"
SSH_CONFIG_PATH = "~/.ssh/config"
KNOWN_HOSTS_PATH = "~/.ssh/known_hosts"
SSH_DIR_MODE = 0o700
KNOWN_HOSTS_MODE = 0o600

# Probed in security/preference order
DEFAULT_KEY_NAMES = (
    "id_ed25519",
    "id_ecdsa",
    "id_rsa",
    "id_dsa",
)

# Key pairs considered when detecting the operator's own key for config
DETECTED_KEY_NAMES = (
    "id_ed25519",
    "id_rsa",
)

# ============================================================
# Application State
# ============================================================

CONFIG_DIR = "~/.config/sherlock"
CONFIG_PATH = "~/.config/sherlock/config.toml"
HISTORY_PATH = "~/.config/sherlock/history.json"
CONFIG_DIR_MODE = 0o755
CONFIG_FILE_MODE = 0o600

# ============================================================
# LLM Defaults
# ============================================================

PROVIDER_OLLAMA = "ollama"
PROVIDER_OPENAI = "openai"
PROVIDER_DEEPSEEK = "deepseek"
SUPPORTED_PROVIDERS = (PROVIDER_OLLAMA, PROVIDER_OPENAI, PROVIDER_DEEPSEEK)

DEFAULT_PROVIDER = PROVIDER_OLLAMA
DEFAULT_MODEL = "qwen2.5:latest"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_LLM_TIMEOUT = 60

DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"
