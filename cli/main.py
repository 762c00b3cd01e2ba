"""Command line entry point for sgdnet training runs."""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Iterable

from sgdnet.training import pipelines


def _format_result(result) -> str:
    payload = {
        "epochs": result.epochs,
        "stopped_early": result.stopped_early,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
        "parameters": result.parameters_path,
    }
    if result.final_accuracy is not None:
        payload["final_accuracy"] = result.final_accuracy
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="synthetic-blobs",
        help="Preset configuration to execute",
    )
    parser.add_argument(
        "--config", type=Path, help="Optional JSON/YAML config override"
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument("--epochs", type=int, help="Override the number of epochs")
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed used for network initialisation and synthetic data",
    )
    parser.add_argument(
        "--data-dir",
        help="Directory with MNIST IDX files or path of the voice feature table",
    )
    parser.add_argument("--load", type=Path, help="Start from a saved parameter file")
    parser.add_argument("--save", type=Path, help="Where to write the trained parameters")
    parser.add_argument("--run-dir", type=Path, help="Directory for metrics and manifest")
    parser.add_argument(
        "--enable-plots", action="store_true", help="Write a loss curve to the run directory"
    )
    parser.add_argument(
        "--offline",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Fall back to generated fixtures when no data path is given",
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = pipelines.read_config_file(args.config)
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = pipelines.merge_config(config, override)

    train_cfg = config.setdefault("train", {})
    model_cfg = config.setdefault("model", {})
    data_opts = config.setdefault("data", {}).setdefault("options", {})

    if args.epochs is not None:
        train_cfg["epochs"] = int(args.epochs)
    if args.seed is not None:
        model_cfg["seed"] = int(args.seed)
        if config["data"].get("name") == "synthetic_blobs":
            data_opts["seed"] = int(args.seed)
    if args.data_dir:
        key = "data_path" if config["data"].get("name") == "voice_gender" else "data_dir"
        data_opts[key] = args.data_dir
    if args.load:
        model_cfg["load_from"] = str(args.load)
    if args.save:
        train_cfg["save_to"] = str(args.save)
    if args.run_dir:
        train_cfg["run_dir"] = str(args.run_dir)
    if args.enable_plots:
        train_cfg["enable_plots"] = True

    config["offline"] = bool(args.offline)
    os.environ["SGDNET_DATA_OFFLINE"] = "1" if args.offline else "0"

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    result = pipelines.run_pipeline(config)
    print(_format_result(result))


if __name__ == "__main__":
    main()
