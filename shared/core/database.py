from sqlalchemy import JSON, create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import sessionmaker, declarative_base
from shared.core.config import CONTRACT_DATABASE_URL

Base = declarative_base()

# JSONB on postgres, plain JSON elsewhere (sqlite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

POOL_SIZE = 2
MAX_OVERFLOW = 2

if CONTRACT_DATABASE_URL.startswith("sqlite"):
    contract_engine = create_engine(
        CONTRACT_DATABASE_URL, connect_args={"check_same_thread": False}
    )
else:
    contract_engine = create_engine(
        CONTRACT_DATABASE_URL,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_size=POOL_SIZE,          # max idle connections
        max_overflow=MAX_OVERFLOW,      # max temporary extra connections
        pool_timeout=30       # wait time before failing
    )

ContractSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=contract_engine)


# Dependency
def get_contract_db():
    db = ContractSessionLocal()
    try:
        yield db
    finally:
        db.close()
