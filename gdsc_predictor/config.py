import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    CORS_ORIGINS: list[str] = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")
    ]
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    RESOURCES_DIR: str = os.getenv("RESOURCES_DIR", "resources")
    DEFAULT_MODEL_NAME: str = os.getenv("DEFAULT_MODEL_NAME", "xgboost")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Raw descriptor columns (must match schemas)
    INPUT_COLUMNS = [
        "Tissue",
        "Sub_Tissue",
        "Cancer_Type",
        "MSI_Status",
        "Drug_Target",
        "Target_Pathway",
    ]
