"""
Data models for the configuration and capability documents.

Both documents are frozen: the stores replace them whole, so anyone holding
a reference keeps a fully formed snapshot.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

AspectMode = Literal["AUTO_MAX", "R16_9", "R4_3", "R1_1"]
Facing = Literal["back", "front"]

ASPECT_MODES: List[str] = ["AUTO_MAX", "R16_9", "R4_3", "R1_1"]
FACINGS: List[str] = ["back", "front"]

BITRATE_MIN_KBPS = 300
BITRATE_MAX_KBPS = 20000


class CaptureConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    micEnabled: bool = False
    width: int = 1280
    height: int = 720
    fps: int = 30
    bitrateKbps: int = 6000
    aspect: AspectMode = "AUTO_MAX"
    camera: Facing = "back"
    cameraName: Optional[str] = None  # exact device name, wins over `camera`

    def current(self) -> Dict:
        """Subset echoed back alongside the capability document."""
        return {
            "cameraName": self.cameraName,
            "aspect": self.aspect,
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
        }


class CameraDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    label: Optional[str] = None
    facing: Optional[str] = None


class CameraFormat(BaseModel):
    model_config = ConfigDict(frozen=True)

    w: int = Field(gt=0)
    h: int = Field(gt=0)
    fps: List[int] = Field(default_factory=lambda: [30])


class Capabilities(BaseModel):
    model_config = ConfigDict(frozen=True)

    cameras: List[CameraDescriptor] = Field(default_factory=list)
    formatsByCameraName: Dict[str, List[CameraFormat]] = Field(default_factory=dict)
    supportedAspects: List[str] = Field(default_factory=lambda: list(ASPECT_MODES))
