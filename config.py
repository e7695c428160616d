# config.py
import os

# MySQL database configuration
MYSQL_HOST = os.environ.get("VOTING_MYSQL_HOST", "127.0.0.1")
MYSQL_PORT = os.environ.get("VOTING_MYSQL_PORT", "3306")
MYSQL_USER = os.environ.get("VOTING_MYSQL_USER", "root")
MYSQL_PASSWORD = os.environ.get("VOTING_MYSQL_PASSWORD", "root")   # ← change this
MYSQL_DB = os.environ.get("VOTING_MYSQL_DB", "election_db")

# full URL wins over the MySQL parts (tests use sqlite://)
DATABASE_URL = os.environ.get(
    "VOTING_DATABASE_URL",
    f"mysql+pymysql://{MYSQL_USER}:{MYSQL_PASSWORD}@{MYSQL_HOST}:{MYSQL_PORT}/{MYSQL_DB}",
)

SECRET_KEY = os.environ.get("VOTING_SECRET_KEY", "change-me")
# use for create secret key
# python -c "import secrets; print(secrets.token_hex(32))"

# notification ledger
BLOCKCHAIN_FILE = os.environ.get("VOTING_CHAIN_FILE", "blockchain_data/chain.json")
POW_DIFFICULTY = int(os.environ.get("VOTING_POW_DIFFICULTY", "3"))  # number of leading zeros required

LOG_LEVEL = os.environ.get("VOTING_LOG_LEVEL", "INFO")
