from dotenv import load_dotenv
import os

load_dotenv()

ENV_VARS = [
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "WEATHER_API_KEY",
    "REDIS_HOST",
    "REDIS_PORT",
    "REDIS_PASSWORD",
    "REDIS_SSL",
]

_SECRETS = {"gemini_api_key", "openai_api_key", "weather_api_key", "redis_password"}


def _mask(value):
    if not value:
        return ""
    return value[:4] + "****"


class Config:
    gemini_api_key = os.getenv("GEMINI_API_KEY", "")
    gemini_model = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    openai_api_key = os.getenv("OPENAI_API_KEY", "")
    weather_api_key = os.getenv("WEATHER_API_KEY", "")
    weather_api_url = os.getenv("WEATHER_API_URL", "https://api.weatherapi.com/v1/forecast.json")
    geolocation_url = os.getenv("GEOLOCATION_URL", "http://ip-api.com/json/")

    redis_host = os.getenv("REDIS_HOST", "localhost")
    redis_port = int(os.getenv("REDIS_PORT", "6379"))
    redis_password = os.getenv("REDIS_PASSWORD", "")
    # Default to True for AMR, but allow False for local dev
    redis_ssl = os.getenv("REDIS_SSL", "true").lower() == "true"
    use_local_redis = os.getenv("USE_LOCAL_REDIS", "false").lower() == "true"
    # "redis" or "memory"
    storage_backend = os.getenv("STORAGE_BACKEND", "redis").lower()

    farmer_id = int(os.getenv("FARMER_ID", "1"))
    language = os.getenv("LANGUAGE", "hi-IN")

    location_timeout_s = float(os.getenv("LOCATION_TIMEOUT_S", "8"))
    weather_timeout_s = float(os.getenv("WEATHER_TIMEOUT_S", "30"))
    success_reset_delay_s = float(os.getenv("SUCCESS_RESET_DELAY_S", "3"))

    # Geographic centre of India
    default_lat = float(os.getenv("DEFAULT_LAT", "20.5937"))
    default_lon = float(os.getenv("DEFAULT_LON", "78.9629"))

    _base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

    _speech_dir_env = os.getenv("SPEECH_OUTPUT_DIR")
    if _speech_dir_env:
        speech_output_dir = (
            _speech_dir_env
            if os.path.isabs(_speech_dir_env)
            else os.path.join(_base_dir, _speech_dir_env)
        )
    else:
        speech_output_dir = os.path.join(_base_dir, "speech")

    @staticmethod
    def check_env_variables():
        missing = []
        for key in ENV_VARS:
            if not os.getenv(key):
                print(f"WARNING: Missing the environment variable {key}")
                missing.append(key)
        return missing

    @staticmethod
    def print_config():
        print("Config values:")
        for name in (
            "gemini_api_key",
            "gemini_model",
            "openai_api_key",
            "weather_api_key",
            "weather_api_url",
            "geolocation_url",
            "redis_host",
            "redis_port",
            "redis_password",
            "redis_ssl",
            "use_local_redis",
            "storage_backend",
            "farmer_id",
            "language",
            "location_timeout_s",
            "weather_timeout_s",
            "success_reset_delay_s",
            "default_lat",
            "default_lon",
            "speech_output_dir",
        ):
            value = getattr(Config, name)
            if name in _SECRETS:
                value = _mask(value)
            print(f"{name}={value}")
