from typing import List, Optional
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra='ignore')

    # Supabase settings
    supabase_url: str = ''
    supabase_anon_key: str = ''
    supabase_service_key: str = ''

    # OpenAI settings
    openai_api_key: str = ''
    openai_summary_model: str = 'gpt-4o-mini'

    # Vapi settings
    vapi_api_key: str = ''
    vapi_public_key: str = ''
    vapi_assistant_id: str = ''
    vapi_server_secret: str = ''

    # Function result cache
    upstash_redis_rest_url: str = ''
    upstash_redis_rest_token: str = ''

    # Only reported in health/config
    deepgram_api_key: str = ''

    # Call transfer destinations
    emergency_transfer_number: str = '+35777111104'
    general_transfer_number: str = '+35777111104'

    # Store information
    store_name: str = 'Armenius Store Cyprus'
    store_address: str = '171 Makarios Avenue, Nicosia, Cyprus'
    store_address_el: str = 'Λεωφόρος Μακαρίου 171, Λευκωσία, Κύπρος'
    store_phone: str = '77-111-104'
    store_email: str = 'info@armenius.cy'
    store_maps_url: str = 'https://maps.google.com/?q=171+Makarios+Avenue+Nicosia+Cyprus'
    store_hours: str = 'Monday-Friday 9am-7pm, Saturday 9am-2pm, Sunday closed'

    environment: str = 'development'
    log_level: str = 'INFO'
    vercel_region: Optional[str] = None

    def missing_supabase_settings(self) -> List[str]:
        """Names of the env vars required for the live database that are unset"""
        missing = []
        if not self.supabase_url:
            missing.append('SUPABASE_URL')
        if not self.supabase_anon_key:
            missing.append('SUPABASE_ANON_KEY')
        return missing

    @property
    def has_supabase_config(self) -> bool:
        return not self.missing_supabase_settings()

def get_settings() -> Settings:
    return Settings()
