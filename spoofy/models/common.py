from typing import Annotated

from pydantic import Field, StringConstraints


InterfaceName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
EnterpriseNumber = Annotated[int, Field(ge=0, le=0xFFFFFFFF)]
Seconds = Annotated[float, Field(ge=0)]
PositiveSeconds = Annotated[float, Field(gt=0)]
Count = Annotated[int, Field(ge=1)]
