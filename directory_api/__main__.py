import uvicorn

from .env_settings import get_env


def main() -> None:
    env = get_env()
    uvicorn.run(
        "directory_api.main:create_app",
        factory=True,
        host=env.listen_host,
        port=env.listen_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
