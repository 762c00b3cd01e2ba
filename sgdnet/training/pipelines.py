"""Pipeline assembly: dataset -> network -> trainer -> artifacts."""

from __future__ import annotations

import json
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence

from ..core.network import Network
from ..core.types import RunResult
from ..data import get_dataset
from ..data.voice import save_normalization
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .callbacks import HeldOutEvaluator
from .losses import COSTS
from .trainer import GradientDescent, GradientDescentParams

_PRESETS: Dict[str, Mapping[str, object]] = {
    "synthetic-blobs": {
        "data": {
            "name": "synthetic_blobs",
            "options": {"n_points": 200, "test_points": 50, "seed": 0},
        },
        "model": {"hidden": [8], "seed": 0},
        "train": {
            "epochs": 20,
            "batch_size": 10,
            "learning_rate": 0.5,
            "regularization": 0.1,
            "cost": "cross_entropy",
            "run_dir": "runs/synthetic-blobs",
            "enable_plots": False,
        },
    },
    "mnist": {
        "data": {"name": "mnist", "options": {}},
        "model": {"hidden": [120], "seed": 0},
        "train": {
            "epochs": 15,
            "batch_size": 10,
            "learning_rate": 0.3,
            "regularization": 0.1,
            "cost": "cross_entropy",
            "run_dir": "runs/mnist",
            "enable_plots": False,
        },
    },
    "voice-gender": {
        "data": {"name": "voice_gender", "options": {}},
        "model": {"hidden": [10], "seed": 0},
        "train": {
            "epochs": 200,
            "batch_size": 10,
            "learning_rate": 0.0005,
            "regularization": 0.003,
            "cost": "cross_entropy",
            "run_dir": "runs/voice-gender",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def read_config_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        presets: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                required = {"data", "model", "train"}
                missing = required - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise KeyError(f"Preset {file.name} is missing required sections: {missing_str}")
                presets[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = presets
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    if name not in _PRESETS:
        available = ", ".join(sorted(presets()))
        raise KeyError(f"Unknown preset: {name}. Available presets: {available}")
    return deepcopy(_PRESETS[name])


def merge_config(base: dict, override: Mapping[str, object]) -> dict:
    """Recursively merge ``override`` into ``base`` and return ``base``."""

    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            base[key] = merge_config(dict(base[key]), value)
        else:
            base[key] = value
    return base


def build_params(train_cfg: Mapping[str, object]) -> GradientDescentParams:
    return GradientDescentParams(
        epochs=int(train_cfg.get("epochs", 30)),
        batch_size=int(train_cfg.get("batch_size", 10)),
        learning_rate=float(train_cfg.get("learning_rate", 0.5)),
        regularization=float(train_cfg.get("regularization", 0.1)),
        cost=COSTS.get(str(train_cfg.get("cost", "cross_entropy"))),
    )


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config["data"])
    model_cfg = dict(config.get("model", {}))
    train_cfg = dict(config.get("train", {}))

    offline = bool(config.get("offline", True))
    dataset = get_dataset(
        str(data_cfg["name"]),
        offline=offline,
        cache_dir=train_cfg.get("cache_dir"),
        **dict(data_cfg.get("options", {})),
    )

    hidden = _build_hidden(model_cfg)
    dims = [dataset.input_size, *hidden, dataset.num_classes]
    for key, observed in (("d_in", dims[0]), ("d_out", dims[-1])):
        if key in model_cfg and int(model_cfg[key]) != observed:
            raise ValueError(f"Configured {key}={model_cfg[key]} but the dataset provides {observed}")

    seed = int(model_cfg.get("seed", train_cfg.get("seed", 0)))
    network = Network(dims, seed=seed)
    if model_cfg.get("load_from"):
        network.load(Path(str(model_cfg["load_from"])))

    params = build_params(train_cfg)
    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    _print_startup_summary(
        dataset_name=dataset.name,
        dims=dims,
        splits=dataset.splits,
        params=params,
        param_count=network.parameter_count(),
    )

    train_jsonl = JsonlSink(run_dir / "metrics_train.jsonl", split="train", seed=seed)
    train_csv = CsvSink(run_dir / "metrics_train.csv", split="train")
    eval_jsonl = JsonlSink(run_dir / "metrics_eval.jsonl", split="eval", seed=seed)
    eval_csv = CsvSink(run_dir / "metrics_eval.csv", split="eval")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    evaluator = None
    if dataset.test_labels.shape[0] > 0:
        patience = train_cfg.get("early_stopping_patience")
        evaluator = HeldOutEvaluator(
            dataset.test_inputs,
            dataset.test_labels,
            patience=int(patience) if patience is not None else None,
            sinks=[eval_jsonl, eval_csv],
            verbose=bool(train_cfg.get("verbose", True)),
        )

    trainer = GradientDescent(
        network,
        params,
        training_data=dataset.train,
        callbacks=[train_jsonl, train_csv, plots],
    )
    result = trainer.train(evaluator)
    plots.close()

    parameters_path = Path(str(train_cfg.get("save_to") or run_dir / "parameters.txt"))
    network.save(parameters_path)
    normalization = dataset.extras.get("normalization")
    if normalization:
        save_normalization(
            run_dir / "normalization.txt", normalization["means"], normalization["stddevs"]
        )

    final_accuracy = float(evaluator.last["accuracy"]) if evaluator and evaluator.last else None
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=_safe_config(config, hidden),
        dataset_provenance=dataset.provenance,
        topology=dims,
        training={
            "epochs_run": result.epochs_run,
            "stopped_early": result.stopped_early,
            "final_loss": result.epoch_losses[-1] if result.epoch_losses else None,
            "final_accuracy": final_accuracy,
            "parameters": str(parameters_path),
        },
    )
    (run_dir / "config.json").write_text(json.dumps(_safe_config(config, hidden), indent=2))

    metrics_alias = run_dir / "metrics.jsonl"
    metrics_alias.write_text(train_jsonl.path.read_text())

    return RunResult(
        epochs=result.epochs_run,
        stopped_early=result.stopped_early,
        metrics_path=str(train_jsonl.path),
        manifest_path=manifest,
        parameters_path=str(parameters_path),
        final_accuracy=final_accuracy,
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _build_hidden(model_cfg: Mapping[str, object]) -> List[int]:
    hidden = model_cfg.get("hidden", [30])
    if isinstance(hidden, (int, float, str)):
        return [int(hidden)]
    return [int(h) for h in hidden]  # type: ignore[union-attr]


def _safe_config(config: Mapping[str, object], hidden: Iterable[int]) -> Mapping[str, object]:
    copied = json.loads(json.dumps(config, default=str))
    copied.setdefault("model", {})["hidden"] = list(hidden)
    return copied


def _print_startup_summary(
    *,
    dataset_name: str,
    dims: Sequence[int],
    splits: Mapping[str, int],
    params: GradientDescentParams,
    param_count: int,
) -> None:
    print("=== sgdnet run ===")
    print(f"Dataset       : {dataset_name} (train={splits['train']}, test={splits['test']})")
    print(f"Topology      : {list(dims)}")
    print(f"Cost          : {params.cost.name}")
    print(f"Epochs        : {params.epochs}")
    print(f"Batch size    : {params.batch_size}")
    print(f"Learning rate : {params.learning_rate}")
    print(f"Lambda        : {params.regularization}")
    print(f"Parameters    : {param_count}")
    print("==================")


__all__ = ["run_pipeline", "load_preset", "presets", "merge_config", "read_config_file", "build_params"]
