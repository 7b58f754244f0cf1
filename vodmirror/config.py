"""Configuration settings for VOD Mirror."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    app_name: str = "VOD Mirror"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Storage
    videos_dir: str = "videos"
    database_url: str = "sqlite:///./videos.db"

    # Playlists
    playlist_extension: str = ".m3u8"
    download_timeout_sec: float = 30.0

    class Config:
        env_file = ".env"

    @property
    def videos_root(self) -> Path:
        return Path(self.videos_dir)


settings = Settings()
