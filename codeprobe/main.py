from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from codeprobe.routers import analysis

app = FastAPI(
    title="codeprobe",
    description="Static analysis of JavaScript/TypeScript projects: structure, complexity and quality scores.",
    version="0.1.0"
)

# The visualization client runs on its own dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(analysis.router)

@app.get("/api-status")
async def root():
    return {"message": "codeprobe server is running. Visit /docs for API documentation."}
