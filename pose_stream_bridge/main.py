import sys
import logging
import argparse
import yaml
import uvicorn

from pose_bridge.camera.device_enumerator import DeviceEnumerator
from pose_bridge.camera.frame_sampler import FrameSampler
from pose_bridge.camera.stream_manager import StreamManager
from pose_bridge.common.enums import LogLevel
from pose_bridge.host.host_bridge import HostBridge
from pose_bridge.host.server import create_app
from pose_bridge.loop.controller import TrackingController
from pose_bridge.loop.scheduler import FrameScheduler
from pose_bridge.processing.capability_loader import CapabilityLoader
from pose_bridge.processing.pose_extractor import PoseExtractor

def load_config(path: str) -> dict:
    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}

def configure_logging(level: str):
    logging.basicConfig(
        level=LogLevel(level.upper()).value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def build_controller(config: dict) -> TrackingController:
    """Wires every component from its config section."""
    return TrackingController(
        stream_manager=StreamManager(config['camera']),
        capability_loader=CapabilityLoader(config['pose']),
        sampler=FrameSampler(config['stream']),
        extractor=PoseExtractor(config['pose']),
        bridge=HostBridge(),
        scheduler=FrameScheduler(config['stream']),
    )

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Stream camera pose landmarks to a host application.")
    parser.add_argument('--config', default='config.yaml', help="YAML configuration file")
    parser.add_argument('--host', help="override server.host")
    parser.add_argument('--port', type=int, help="override server.port")
    parser.add_argument('--log-level', choices=[level.value for level in LogLevel], help="override logging.level")
    return parser.parse_args(argv)

def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config)
        configure_logging(args.log_level or config.get('logging', {}).get('level', LogLevel.INFO.value))
        controller = build_controller(config)
        app = create_app(
            controller,
            DeviceEnumerator(config['camera']),
            max_pending=config['server'].get('max_pending_messages', 8),
        )
        host = args.host or config['server']['host']
        port = args.port or config['server']['port']
    except (IOError, yaml.YAMLError) as e:
        print(f"ERROR: Failed to initialize. {e}")
        return 1
    except KeyError as e:
        print(f"ERROR: Missing configuration key: {e}. Please check '{args.config}'.")
        return 1
    except ValueError as e:
        print(f"ERROR: Invalid configuration. {e}")
        return 1

    uvicorn.run(app, host=host, port=port, log_config=None)
    return 0

if __name__ == "__main__":
    sys.exit(main())
