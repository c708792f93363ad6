import argparse
import json

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt


def plot_history(history_path, output_path):
    with open(history_path, 'r') as f:
        history = json.load(f)

    epochs = history['epochs']
    train_loss = history['train_loss']
    test_loss = history['test_loss']

    fig, ax = plt.subplots(figsize=(10, 5))

    ax.semilogy(epochs, train_loss, label='Training Loss (Rel L2)', color='tab:blue')
    ax.semilogy(epochs, test_loss, label='Validation Loss (Rel L2)', color='tab:orange')
    ax.set_xlabel('Epoch')
    ax.set_ylabel('Loss (Relative L2)')
    ax.set_title('Training Progress')
    ax.grid(True)
    ax.legend()

    fig.tight_layout()
    fig.savefig(output_path)
    plt.close(fig)
    print(f"Plot saved to {output_path}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--history", type=str, default="checkpoints/history.json")
    parser.add_argument("--output", type=str, default="training_plot.png")
    args = parser.parse_args()

    try:
        plot_history(args.history, args.output)
    except FileNotFoundError:
        print(f"Error: History file not found at {args.history}")
