from pydantic import BaseModel, ConfigDict, Field, PositiveInt
from typing import Literal


class VerifierConfig(BaseModel):
    base_url: str = "http://localhost:3001"
    username: str | None = None
    password: str | None = None
    require_auth: bool = False
    status_path: str = "/health"
    convert_path: str = "/forms/chromium/convert/html"
    timeout: float = Field(default=5.0, gt=0)
    roundtrip_timeout: float = Field(default=30.0, gt=0)


class RetryPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_attempts: PositiveInt = 5
    delay_seconds: PositiveInt = 5


class SetupConfig(BaseModel):
    install_dir: str = "/opt/bg-pdf-service"
    repo_url: str = "https://github.com/Kanevry/bg-pdf-service.git"
    branch: str = "main"
    service_name: str = "bg-pdf-service"
    systemd_dir: str = "/etc/systemd/system"


class ReadycheckConfig(BaseModel):
    verifier: VerifierConfig = Field(default_factory=VerifierConfig)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    setup: SetupConfig = Field(default_factory=SetupConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
