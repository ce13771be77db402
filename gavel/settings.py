from pathlib import Path
from pydantic import BaseModel, Field
import tomllib
import os


class AccountsCfg(BaseModel):
    initial_balance: float = Field(default=1000.0, ge=0)


class IdsCfg(BaseModel):
    prefix: str = "ID"
    start: int = 1000


class AuctionsCfg(BaseModel):
    default_duration_minutes: int = Field(default=60, gt=0)
    max_duration_minutes: int = Field(default=7 * 24 * 60, gt=0)


class LoggingCfg(BaseModel):
    level: str = "INFO"
    file: str = "gavel.log"


class Settings(BaseModel):
    accounts: AccountsCfg = AccountsCfg()
    ids: IdsCfg = IdsCfg()
    auctions: AuctionsCfg = AuctionsCfg()
    logging: LoggingCfg = LoggingCfg()


def load_settings(path: Path | None = None) -> Settings:
    cfg_path = path or Path(os.getenv("GAVEL_CONFIG", "gavel.toml"))
    raw = tomllib.loads(cfg_path.read_text()) if cfg_path.exists() else {}
    return Settings.model_validate(raw)
