import os
import time
import json
import argparse
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from collections import Counter
from datetime import datetime
from adaptive_codecs.adaptive_huffman import AdaptiveHuffman
from adaptive_codecs.arithmetic import ArithmeticCodec
from adaptive_codecs.bitio import BitStream
from adaptive_codecs.huffman import HuffmanCodec
from adaptive_codecs.lz77 import LZ77, BackRef


# ---------- Setup ----------
def parse_arguments():
    parser = argparse.ArgumentParser(
        description="Compare adaptive Huffman, static Huffman, arithmetic coding and LZ77.")
    parser.add_argument("--input", required=True, help="file to compress")
    parser.add_argument("--output-dir", default="output", help="where results are written")
    parser.add_argument("--limit", type=int, default=512_000,
                        help="only use the first N bytes for the slower coders")
    parser.add_argument("--no-plots", action="store_true", help="skip the charts")
    return parser.parse_args()


# ---------- Visualization ----------
def plot_comparisons(results, out_dir):
    """Bar charts and a trade-off scatter for the collected results."""
    plt.style.use("seaborn-v0_8-darkgrid")
    plt.rcParams.update({"font.size": 10, "figure.dpi": 110})

    algos = list(results.keys())
    ratios = np.array([r["compression_ratio"] for r in results.values()])
    comp_times = np.array([r["compression_time"] for r in results.values()])
    decomp_times = np.array([r["decompression_time"] for r in results.values()])
    space_saved = (1 - ratios) * 100

    plots = [
        ("Compression Ratio (Compressed/Original)", ratios, "Ratio", "comparison_ratios.png"),
        ("Compression Time Comparison", comp_times, "Time (s)", "comparison_times.png"),
        ("Decompression Time Comparison", decomp_times, "Time (s)", "comparison_decompression_times.png"),
        ("Percentage Space Saved", space_saved, "% Saved", "comparison_space_saved.png"),
    ]
    for title, vals, ylabel, filename in plots:
        plt.figure(figsize=(7, 5))
        bars = plt.bar(algos, vals)
        plt.bar_label(bars, fmt="%.3f", padding=3)
        plt.title(title)
        plt.ylabel(ylabel)
        plt.xticks(rotation=15)
        plt.tight_layout()
        plt.savefig(os.path.join(out_dir, filename))
        plt.close()

    # ===== Trade-off Scatter: Ratio vs Time =====
    plt.figure(figsize=(7, 5))
    plt.scatter(comp_times, ratios, s=150, color="royalblue")
    for i, algo in enumerate(algos):
        plt.text(comp_times[i], ratios[i], algo, fontsize=9)
    plt.xlabel("Compression Time (s)")
    plt.ylabel("Compression Ratio (lower is better)")
    plt.title("Compression Time vs Compression Ratio Trade-off")
    plt.grid(True, linestyle="--", alpha=0.6)
    plt.tight_layout()
    plt.savefig(os.path.join(out_dir, "compression_tradeoff.png"))
    plt.close()

    print(f" Saved {len(plots) + 1} visualizations in {out_dir}")


# ---------- Helpers ----------
def save_bits_file(data_bytes, path):
    bits = BitStream.frombytes(data_bytes).to01()
    with open(path, "w", encoding="utf-8") as f:
        f.write(bits)
    print(f" Binary bitstring written to {path}")


def export_encoding_map(data_bytes, out_path):
    freq = Counter(data_bytes)
    total = sum(freq.values())
    enc_map = {
        "total_symbols": total,
        "unique_symbols": len(freq),
        "symbols": {
            str(sym): {
                "char": chr(sym) if 32 <= sym < 127 else f"\\x{sym:02x}",
                "count": cnt,
                "probability": round(cnt / total, 6)
            }
            for sym, cnt in freq.items()
        }
    }
    with open(out_path, "w") as f:
        json.dump(enc_map, f, indent=2)
    print(f" Encoding map written to {out_path}")


def run_codec(compress, data):
    t0 = time.time()
    payload, size, decompress = compress(data)
    t1 = time.time()
    restored = decompress(payload)
    t2 = time.time()
    return payload, {
        "compression_ratio": round(size / len(data), 6),
        "compression_time": round(t1 - t0, 6),
        "decompression_time": round(t2 - t1, 6),
        "lossless": restored == data,
    }


def adaptive_huffman(data):
    ah = AdaptiveHuffman()
    blob = ah.compress_bytes(data)
    return blob, len(blob), ah.decompress_bytes


def static_huffman(data):
    codec = HuffmanCodec()
    blob = codec.encode(data).pack()
    return blob, len(blob), lambda b: bytes(codec.decode(BitStream.unpack(b)))


def arithmetic(data):
    codec = ArithmeticCodec.from_data(data)
    blob = codec.encode(data).pack()
    # model table: one symbol byte plus a 4-byte count per entry
    size = len(blob) + 5 * len(codec.symbols)
    return blob, size, lambda b: bytes(codec.decode(BitStream.unpack(b), len(data)))


def lz77(data):
    matcher = LZ77()
    tokens = matcher.encode(data)
    # literal: flag + byte, back reference: flag + 12-bit distance + 4-bit length
    bits = sum(17 if isinstance(t, BackRef) else 9 for t in tokens)
    return tokens, (bits + 7) // 8, matcher.decode


# ---------- Main ----------
def main():
    args = parse_arguments()
    out_dir = args.output_dir
    os.makedirs(out_dir, exist_ok=True)

    if not os.path.exists(args.input):
        raise FileNotFoundError(f"Data file not found: {args.input}")

    print(" Reading dataset...")
    with open(args.input, "rb") as f:
        data = f.read()
    orig_size = len(data)
    print(f" Read complete. Size: {orig_size:,} bytes")
    if not data:
        raise SystemExit("Input file is empty, nothing to compare.")

    if orig_size > args.limit:
        print(f" Dataset large → using only first {args.limit:,} bytes.")
        data = data[:args.limit]

    results = {}
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")

    runs = [
        ("Adaptive Huffman", adaptive_huffman),
        ("Huffman", static_huffman),
        ("Arithmetic", arithmetic),
        ("LZ77", lz77),
    ]
    for name, compress in runs:
        print(f"\n Starting {name} Compression...")
        try:
            payload, metrics = run_codec(compress, data)
        except Exception as e:
            print(f" {name} failed: {e}")
            continue

        results[name] = metrics
        if isinstance(payload, bytes):
            base = os.path.join(out_dir, f"{name.lower().replace(' ', '_')}_{ts}")
            with open(base + ".bin", "wb") as f:
                f.write(payload)
            save_bits_file(payload, base + "_bits.txt")
        print(f" {name} Done. Ratio={metrics['compression_ratio']:.4f}, Lossless={metrics['lossless']}")

    export_encoding_map(data, os.path.join(out_dir, f"encoding_map_{ts}.json"))

    # ===================================================
    #  Save & Visualize
    # ===================================================
    results_path = os.path.join(out_dir, f"compression_comparison_{ts}.json")
    with open(results_path, "w") as f:
        json.dump(results, f, indent=2)

    if results and not args.no_plots:
        plot_comparisons(results, out_dir)

    print("\n Compression comparison complete!")
    print(f"Results saved in: {results_path}")


if __name__ == "__main__":
    main()
