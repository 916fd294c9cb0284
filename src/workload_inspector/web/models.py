from pydantic import BaseModel


class RunCommandRequest(BaseModel):
    command: str

    model_config = {"extra": "ignore"}


EXPECTED_REQUEST_FORMAT = 'expected request format is {"command": "string"}'
