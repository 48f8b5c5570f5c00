from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from database import Base, engine
from api import game, players


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 在應用啟動時建立 kv_entries 表
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Two Rooms & A Boom API",
    description="Backend API for the Two Rooms & A Boom social deduction game",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(game.router)
app.include_router(players.router)


@app.get("/")
def root():
    return {"message": "Two Rooms & A Boom API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
