import asyncio
import argparse
import sys
from pathlib import Path
from feature_pipeline.pipeline import TrainingPipeline, InferencePipeline
from feature_pipeline.utils.logging_config import setup_logging
from feature_pipeline.config import get_config
from feature_pipeline.errors import PipelineError

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Streaming tabular feature pipeline")
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--log-level", help="Logging level")
    parser.add_argument("--artifact-dir", help="Directory holding preprocessing.json and model.joblib")

    subparsers = parser.add_subparsers(dest="command", required=True)

    train = subparsers.add_parser("train", help="Fit the encoder, train the classifier and save artifacts")
    train.add_argument("--data-path", required=True, help="Path to the training CSV")
    train.add_argument("--label-column", help="Name of the label column")

    predict = subparsers.add_parser("predict", help="Encode unseen rows and write predictions")
    predict.add_argument("--data-path", required=True, help="Path to the CSV to score")
    predict.add_argument("--output", help="Path of the output CSV")

    init_config = subparsers.add_parser("init-config", help="Write the effective configuration to a JSON file")
    init_config.add_argument("--output", default="config.json", help="Path of the configuration file")

    return parser

def main(argv=None):
    """Main entry point for the feature pipeline"""
    args = build_parser().parse_args(argv)

    # Load configuration
    config = get_config(args.config)

    if args.command == "init-config":
        config.save_config(args.output)
        print(f"Configuration written to {args.output}")
        return

    issues = config.validate_config()
    if issues:
        print(f"❌ Invalid configuration: {issues}")
        sys.exit(1)

    # Validate data path exists
    if not Path(args.data_path).exists():
        print(f"Error: Data file not found at {args.data_path}")
        sys.exit(1)

    config.create_directories()

    # Setup logging
    setup_logging(log_level=args.log_level or config.logging_level, log_dir=str(config.paths.LOGS_DIR))

    async def run():
        if args.command == "train":
            result = await TrainingPipeline(config).run_pipeline(
                data_path=args.data_path,
                label_column=args.label_column,
                artifact_dir=args.artifact_dir
            )
            print("🎉 Training completed successfully!")
            print(f"Feature width: {result['artifact'].total_dim}")
            print(f"Training accuracy: {result['training_report']['accuracy']:.4f}")
            print(f"Artifacts: {result['artifact_path']}, {result['model_path']}")
        else:
            result = await InferencePipeline(config).run_pipeline(
                data_path=args.data_path,
                output_path=args.output,
                artifact_dir=args.artifact_dir
            )
            print("🎉 Inference completed successfully!")
            print(f"Wrote {result['prediction_report']['rows']} predictions to {result['output_path']}")

    try:
        asyncio.run(run())
    except PipelineError as e:
        print(f"❌ Pipeline failed: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
