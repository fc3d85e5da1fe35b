"""Rule-based eBUS target emulation, a virtual-clock harness and VR71/VR90/VR92 profiles."""