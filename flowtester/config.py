"""
Configuration settings for the Flow Tester
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Flow Tester"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Ollama settings
    OLLAMA_HOST: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llava"  # vision model
    OLLAMA_TEXT_MODEL: str = "llama3.2"
    LLM_TEMPERATURE: float = 0.2

    # Browser settings
    BROWSER_HEADLESS: bool = True
    BROWSER_TIMEOUT: int = 30000  # ms
    VIEWPORT_WIDTH: int = 1280
    VIEWPORT_HEIGHT: int = 720
    USER_AGENT: str = "FlowTesterBot/1.0"
    SCREENSHOT_QUALITY: int = 80

    # Phase timeouts (ms)
    DECISION_TIMEOUT: int = 60000
    VISION_TIMEOUT: int = 90000
    ELEMENT_LOOKUP_TIMEOUT: int = 5000
    EXECUTION_TIMEOUT: int = 30000

    # Prompt and loop bounds
    MAX_PAGE_ELEMENTS: int = 100
    MAX_PROMPT_ELEMENTS: int = 60
    MAX_PROMPT_HISTORY: int = 5
    MAX_ACTIONS_PER_STEP: int = 3

    class Config:
        env_file = ".env"
        extra = "allow"


settings = Settings()
