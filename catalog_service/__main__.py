import uvicorn

from catalog_service import config

if __name__ == "__main__":
    uvicorn.run("catalog_service.main:app", host=config.HOST, port=config.PORT)
