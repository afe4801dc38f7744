import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("RENTAL_CONSOLE_DB_URL", "sqlite+aiosqlite:///./rental_console.db")
DATABASE_ECHO = os.getenv("RENTAL_CONSOLE_DB_ECHO", "false").lower() == "true"

# "sql" talks to the database directly, "rest" goes through the hosted PostgREST endpoint
RECORD_STORE = os.getenv("RENTAL_CONSOLE_STORE", "sql")
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")
STORE_TIMEOUT = float(os.getenv("RENTAL_CONSOLE_STORE_TIMEOUT", "10"))

# "fixed" or "category"
PRICING = os.getenv("RENTAL_CONSOLE_PRICING", "fixed")

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your-secret-key")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

S3_BUCKET_NAME = os.getenv("S3_BUCKET_NAME", "rental-console-vehicles")
S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL", "")
S3_ACCESS_DOMAIN = os.getenv("S3_ACCESS_DOMAIN", "")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")

# password for the seeded manager account
ADMIN_PASSWORD = os.getenv("RENTAL_CONSOLE_ADMIN_PASSWORD", "admin123")
