from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./data/db.sqlite3"
    api_key: str = ""  # empty = no auth check (local dev)
    data_dir: str = "./data"
    max_photo_size_bytes: int = 10 * 1024 * 1024  # 10MB
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]

    # Detection providers
    detection_provider: str = "mock"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = ""
    huggingface_api_key: str = ""
    huggingface_model_endpoint: str = (
        "https://api-inference.huggingface.co/models/Roboflow/car-damage-level-detection-yolov8"
    )
    roboflow_api_key: str = ""
    roboflow_model_id: str = "car-damage-c1f0i/1"
    roboflow_endpoint: str = "https://serverless.roboflow.com"
    detection_min_confidence: float = 0.3
    provider_timeout_seconds: float = 60.0
    mock_latency_seconds: float = 0.0

    # Workflow
    analysis_concurrency: int = 3
    match_distance_threshold: float = 50.0  # raw image pixels
    severity_base_costs: dict[str, float] = {"minor": 200.0, "moderate": 500.0, "severe": 1200.0}

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
